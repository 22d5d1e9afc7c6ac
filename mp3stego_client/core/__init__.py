"""
Client-side orchestration layer.

The `StegoSession` acts as the coordinator, routing user actions through
validation, the capacity advisor, the resource lifecycle manager and the
result presentation router.
"""

from .capacity import CapacityAdvisor
from .presenter import ResultPresentationRouter
from .resources import ObjectURLRegistry, ResourceLifecycleManager, SlotKind
from .save import SaveService, propose_save
from .session import StegoSession, View
from .validation import Violation, validate

__all__ = [
    "CapacityAdvisor",
    "ObjectURLRegistry",
    "ResourceLifecycleManager",
    "ResultPresentationRouter",
    "SaveService",
    "SlotKind",
    "StegoSession",
    "View",
    "Violation",
    "propose_save",
    "validate",
]
