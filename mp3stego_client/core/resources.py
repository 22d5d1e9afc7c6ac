"""
Ownership of binary results and the transient URLs that expose them.

Every blob produced by a completed operation is registered here, and every
transient URL minted for it is revoked here. Nothing is left for the garbage
collector: an unrevoked URL pins its blob for the rest of the session.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from mp3stego_client.models.results import Blob

log = logging.getLogger(__name__)


class ObjectURLRegistry:
    """
    In-process registry of object URLs, the host primitive behind transient URLs.

    A URL stays resolvable until it is explicitly revoked.
    """

    SCHEME = "blob:mp3stego/"

    def __init__(self) -> None:
        self._objects: Dict[str, Blob] = {}

    def create_object_url(self, blob: Blob) -> str:
        url = f"{self.SCHEME}{uuid.uuid4()}"
        self._objects[url] = blob
        return url

    def revoke_object_url(self, url: str) -> None:
        """Releases a URL. Revoking an unknown or already revoked URL is a no-op."""
        self._objects.pop(url, None)

    def is_live(self, url: str) -> bool:
        return url in self._objects

    @property
    def live_count(self) -> int:
        return len(self._objects)


class SlotKind(str, Enum):
    """Result slots that hold a blob."""

    STEGO = "stego"
    EXTRACT = "extract"


@dataclass(frozen=True)
class HeldResult:
    """A registered blob, its transient URL and any descriptive metadata."""

    blob: Blob
    url: str
    metadata: Any = None


class ResourceLifecycleManager:
    """
    Sole owner of the current result blobs and their transient URLs.

    Guarantees at most one live URL per slot: registering a new result for a
    slot revokes the URL of the result it replaces before minting a new one.
    """

    def __init__(self, registry: Optional[ObjectURLRegistry] = None, resource_logger=None):
        """
        Initializes the manager.

        Args:
            registry: The object-URL registry to mint and revoke URLs with.
            resource_logger: Optional ResourceLogger for structured events.
        """
        self.registry = registry or ObjectURLRegistry()
        self._held: Dict[SlotKind, HeldResult] = {}
        self._events = resource_logger

    def set_result(self, kind: SlotKind, blob: Blob, metadata: Any = None) -> str:
        """
        Registers a blob for a slot, retiring the previous one for that slot.

        Returns:
            The new transient URL for the blob.
        """
        self._release(kind)
        url = self.registry.create_object_url(blob)
        self._held[kind] = HeldResult(blob=blob, url=url, metadata=metadata)
        log.debug(f"Registered {kind.value} result ({blob.size} bytes) as {url}")
        if self._events:
            self._events.registered(kind.value, url, blob.size)
        return url

    def current(self, kind: SlotKind) -> Optional[HeldResult]:
        return self._held.get(kind)

    def clear(self, kind: SlotKind) -> None:
        """Revokes the URL of one slot and drops its references."""
        self._release(kind)

    def clear_all(self) -> None:
        """Revokes every held URL unconditionally and drops all references."""
        for kind in list(self._held):
            self._release(kind)

    def live_url_count(self, kind: Optional[SlotKind] = None) -> int:
        """Counts live URLs for one slot, or every live URL in the registry."""
        if kind is None:
            return self.registry.live_count
        held = self._held.get(kind)
        return int(held is not None and self.registry.is_live(held.url))

    def _release(self, kind: SlotKind) -> None:
        held = self._held.pop(kind, None)
        if held is None:
            return
        self.registry.revoke_object_url(held.url)
        log.debug(f"Released {kind.value} result URL {held.url}")
        if self._events:
            self._events.released(kind.value, held.url)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clear_all()
        return False
