"""
Advisory tracking of the embedding capacity of the selected carrier.

Capacity queries are never cancelled. Each selection change mints a new
token, and a query whose token is no longer current is discarded when it
completes, so a slow answer for an old selection cannot overwrite the report
for the newer one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Hashable, Optional

from mp3stego_client.exceptions import StegoClientError
from mp3stego_client.models.requests import CapacityRequest, Method, SelectedFile
from mp3stego_client.models.results import CapacityReport
from mp3stego_client.utils.formatting import format_kb

log = logging.getLogger(__name__)

CapacityQuery = Callable[[CapacityRequest], Awaitable[CapacityReport]]


class CapacityStatus(str, Enum):
    FITS = "fits"
    EXCEEDS = "exceeds"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CapacityCheck:
    """Whether a secret of a given size fits the cached capacity."""

    status: CapacityStatus
    message: Optional[str] = None

    @property
    def warning(self) -> bool:
        return self.status is CapacityStatus.EXCEEDS


def capacity_warning_message(secret_size: int, capacity: int) -> str:
    return (
        f"The secret file ({format_kb(secret_size)} KB) is "
        f"{format_kb(secret_size - capacity)} KB larger than the MP3 capacity "
        f"({format_kb(capacity)} KB)."
    )


class CapacityAdvisor:
    """Owns the cached CapacityReport for the current carrier/method selection."""

    def __init__(self, query: CapacityQuery, capacity_logger=None):
        """
        Initializes the advisor.

        Args:
            query: Coroutine function that asks the service for a CapacityReport.
            capacity_logger: Optional CapacityLogger for structured events.
        """
        self._query = query
        self._events = capacity_logger
        self._token = 0
        self._selection_key: Optional[Hashable] = None
        self._report: Optional[CapacityReport] = None
        self._secret_size: Optional[int] = None

    @property
    def report(self) -> Optional[CapacityReport]:
        return self._report

    @property
    def capacity_bytes(self) -> Optional[int]:
        """Last known capacity, or None when unknown."""
        return self._report.capacity_bytes if self._report else None

    @property
    def selection_key(self) -> Optional[Hashable]:
        return self._selection_key

    def invalidate(self) -> None:
        """Forgets the cached report and orphans any in-flight query."""
        self._token += 1
        self._selection_key = None
        self._report = None

    async def on_selection_changed(
        self,
        mp3_file: Optional[SelectedFile],
        method: Optional[Method] = None,
        lsb_bits: Optional[int] = None,
    ) -> Optional[CapacityReport]:
        """
        Re-queries capacity for a new carrier/method/depth selection.

        Returns:
            The report applied for this selection, or None when the selection
            was cleared, the query failed, or a newer selection superseded it.
        """
        self.invalidate()
        if mp3_file is None:
            return None

        request = CapacityRequest(
            mp3_file=mp3_file,
            method=method or Method.HEADER,
            lsb_bits=lsb_bits or 1,
        )
        token = self._token
        self._selection_key = request.selection_key
        if self._events:
            self._events.queried(mp3_file.name, request.method.value, token)

        try:
            report = await self._query(request)
        except StegoClientError as e:
            if token != self._token:
                self._discard(mp3_file, token)
                return None
            # Capacity is advisory: a failure means "unknown", never an error.
            log.debug(f"Capacity query for '{mp3_file.name}' failed: {e}")
            if self._events:
                self._events.failed(mp3_file.name, str(e))
            self._report = None
            return None

        if token != self._token:
            self._discard(mp3_file, token)
            return None

        if not report.success:
            log.debug(f"Service reported no capacity for '{mp3_file.name}'.")
            self._report = None
            return None

        self._report = report
        log.debug(
            f"Capacity for '{mp3_file.name}' ({report.method}): "
            f"{report.capacity_bytes} bytes"
        )
        if self._events:
            self._events.applied(mp3_file.name, report.capacity_bytes, token)
        return report

    def _discard(self, mp3_file: SelectedFile, token: int) -> None:
        log.debug(
            f"Discarding stale capacity result for '{mp3_file.name}' "
            f"(token {token}, current {self._token})."
        )
        if self._events:
            self._events.discarded(mp3_file.name, token, self._token)

    def check_capacity_warning(self, secret_size: int) -> CapacityCheck:
        """
        Checks a secret size against the cached capacity.

        No warning is issued when the capacity is unknown.
        """
        capacity = self.capacity_bytes
        if capacity is None:
            return CapacityCheck(CapacityStatus.UNKNOWN)
        if secret_size <= capacity:
            return CapacityCheck(CapacityStatus.FITS)
        return CapacityCheck(
            CapacityStatus.EXCEEDS, capacity_warning_message(secret_size, capacity)
        )

    def on_secret_file_changed(self, secret_file: Optional[SelectedFile]) -> bool:
        """
        Remembers the chosen secret and reports whether a warning should show.
        """
        self._secret_size = secret_file.size if secret_file else None
        return self.current_check().warning

    def current_check(self) -> CapacityCheck:
        """Re-evaluates the remembered secret against the current report."""
        if self._secret_size is None:
            return CapacityCheck(CapacityStatus.UNKNOWN)
        return self.check_capacity_warning(self._secret_size)
