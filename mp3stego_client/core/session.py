"""
The session coordinator: consumes named user actions and routes them through
validation, the service client, the resource manager and the router.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from mp3stego_client.api.client import StegoAPIClient
from mp3stego_client.exceptions import (
    DecodingFailure,
    NoResultError,
    StegoClientError,
    TransportFailure,
    ValidationFailure,
)
from mp3stego_client.media.probe import FileInfo, describe_file
from mp3stego_client.models.requests import (
    Draft,
    EmbedDraft,
    ExtractDraft,
    FileInput,
    Method,
    OperationKind,
    PsnrDraft,
)
from mp3stego_client.models.results import CapacityReport, ExtractResult, OperationOutcome

from .capacity import CapacityAdvisor, CapacityCheck
from .presenter import ResultPresentationRouter, ViewState
from .resources import ResourceLifecycleManager, SlotKind
from .save import DEFAULT_EXTRACT_BASENAME, SaveService, propose_save, propose_stego_save
from .validation import KeyFilterResult, ensure_valid, filter_key_input

log = logging.getLogger(__name__)

CONNECTED_MESSAGE = "Connected to Steganography Server"
SAVED_MESSAGE = "File saved successfully!"
PROGRESS_MESSAGES = {
    OperationKind.EMBED: "Processing... Please wait",
    OperationKind.EXTRACT: "Extracting... Please wait",
    OperationKind.PSNR: "Calculating PSNR... Please wait",
}


class View(str, Enum):
    EMBED = "embed"
    EXTRACT = "extract"
    PSNR = "psnr"


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    message: str


class StegoSession:
    """
    Orchestrates one user session against the steganography service.

    Each submission slot (embed, extract, psnr) allows one request in flight;
    different slots may overlap.
    """

    def __init__(
        self,
        api_client: StegoAPIClient,
        save_service: Optional[SaveService] = None,
        resources: Optional[ResourceLifecycleManager] = None,
        operation_logger=None,
        capacity_logger=None,
    ):
        self.api_client = api_client
        self.resources = resources or ResourceLifecycleManager()
        self.router = ResultPresentationRouter(self.resources)
        self.capacity = CapacityAdvisor(api_client.capacity, capacity_logger)
        self.save_service = save_service or SaveService(Path("."))
        self.view = View.EMBED
        self._in_flight: set[OperationKind] = set()
        self._events = operation_logger

    @property
    def view_state(self) -> ViewState:
        return self.router.current

    def is_busy(self, kind: OperationKind) -> bool:
        return kind in self._in_flight

    async def check_connection(self) -> ConnectionStatus:
        try:
            health = await self.api_client.check_health()
        except StegoClientError as e:
            log.debug(f"Connection check failed: {e}")
            return ConnectionStatus(False, f"Connection failed: {e}")
        log.debug(f"Service health: {health.status} at {health.time}")
        return ConnectionStatus(True, CONNECTED_MESSAGE)

    def switch_view(self, view: View) -> ViewState:
        """Switches between the embed, extract and PSNR forms."""
        self.resources.clear_all()
        self.view = view
        return self.router.idle()

    def start_new_operation(self) -> ViewState:
        """Resets the result area of the current view."""
        self.resources.clear_all()
        return self.router.idle()

    def key_input_changed(self, raw: str) -> KeyFilterResult:
        return filter_key_input(raw)

    async def mp3_selected(
        self,
        files: FileInput,
        method: Optional[Method] = None,
        lsb_bits: Optional[int] = None,
    ) -> Optional[FileInfo]:
        """Describes a newly picked carrier and refreshes its capacity."""
        file = files[0] if files else None
        info = await asyncio.to_thread(describe_file, file)
        await self.capacity.on_selection_changed(file, method, lsb_bits)
        return info

    async def method_changed(
        self,
        files: FileInput,
        method: Method,
        lsb_bits: Optional[int] = None,
    ) -> Optional[CapacityReport]:
        """Refreshes capacity after the method or bit-depth selection changed."""
        file = files[0] if files else None
        return await self.capacity.on_selection_changed(file, method, lsb_bits)

    def secret_selected(self, files: FileInput) -> CapacityCheck:
        self.capacity.on_secret_file_changed(files[0] if files else None)
        return self.capacity.current_check()

    async def submit_embed(self, draft: EmbedDraft) -> ViewState:
        return await self._submit(OperationKind.EMBED, draft, self.api_client.embed)

    async def submit_extract(self, draft: ExtractDraft) -> ViewState:
        return await self._submit(OperationKind.EXTRACT, draft, self.api_client.extract)

    async def submit_psnr(self, draft: PsnrDraft) -> ViewState:
        return await self._submit(OperationKind.PSNR, draft, self.api_client.psnr)

    async def _submit(
        self, kind: OperationKind, draft: Draft, call: Callable[..., Awaitable]
    ) -> ViewState:
        if self.is_busy(kind):
            log.warning(
                f"[yellow]A {kind.value} request is already in progress; "
                "ignoring the new submission.[/yellow]"
            )
            if self._events:
                self._events.rejected(kind.value, "in_progress")
            return self.router.current

        try:
            ensure_valid(draft)
        except ValidationFailure as e:
            if self._events:
                self._events.failed(kind.value, str(e), stage="validation")
            return self.router.present(OperationOutcome.failure(kind, str(e)))

        request = draft.build_request()
        self._in_flight.add(kind)
        self.router.notice(PROGRESS_MESSAGES[kind])
        if self._events:
            self._events.submitted(kind.value)
        start_time = time.monotonic()
        try:
            result = await call(request)
        except (TransportFailure, DecodingFailure) as e:
            log.debug(f"{kind.value} request failed: {e}")
            if self._events:
                self._events.failed(kind.value, str(e), stage="service")
            outcome = OperationOutcome.failure(kind, str(e))
        else:
            if self._events:
                self._events.completed(kind.value, time.monotonic() - start_time)
            outcome = OperationOutcome.success(kind, result)
        finally:
            self._in_flight.discard(kind)
        return self.router.present(outcome)

    async def save_stego(self) -> Optional[Path]:
        """Saves the currently held stego audio."""
        held = self.resources.current(SlotKind.STEGO)
        if held is None:
            raise NoResultError("There is no embedded audio to save.")
        proposal = propose_stego_save(held.blob, held.metadata)
        return await self._save(held.blob, proposal)

    async def save_extracted(self) -> Optional[Path]:
        """Saves the currently held extracted payload."""
        held = self.resources.current(SlotKind.EXTRACT)
        if held is None:
            raise NoResultError("There is no extracted file to save.")
        result: ExtractResult = held.metadata
        base_name = DEFAULT_EXTRACT_BASENAME
        if result.metadata and result.metadata.original_filename:
            base_name = Path(result.metadata.original_filename).stem or base_name
        proposal = propose_save(held.blob, result.content_type, base_name)
        return await self._save(held.blob, proposal)

    async def _save(self, blob, proposal) -> Optional[Path]:
        path = await self.save_service.save(blob, proposal)
        if path is not None:
            self.router.notice(SAVED_MESSAGE)
        return path

    async def close(self) -> None:
        """Releases every held result and closes the service connection."""
        self.resources.clear_all()
        await self.api_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
