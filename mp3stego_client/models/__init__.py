"""
Data Models Layer.

This package contains the request drafts, service reports, result values and
the Pydantic configuration model used throughout the application.
"""

from .config import ClientConfig
from .requests import (
    EmbedDraft,
    ExtractDraft,
    Method,
    OperationKind,
    PsnrDraft,
    SelectedFile,
)
from .results import Blob, CapacityReport, ExtractMetadata, OperationOutcome

__all__ = [
    "Blob",
    "CapacityReport",
    "ClientConfig",
    "EmbedDraft",
    "ExtractDraft",
    "ExtractMetadata",
    "Method",
    "OperationKind",
    "OperationOutcome",
    "PsnrDraft",
    "SelectedFile",
]
