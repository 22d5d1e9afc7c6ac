"""
Maps operation outcomes to a pure view-state value.

The router never touches a display itself; a rendering adapter (the Rich
formatters in the CLI) turns the view-state into concrete output. View-state
fields hold plain, unescaped text, so renderers must escape them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from mp3stego_client.models.results import (
    EmbedResult,
    ExtractMetadata,
    ExtractResult,
    OperationOutcome,
    PsnrResult,
)
from mp3stego_client.utils.formatting import format_kb

from .resources import ResourceLifecycleManager, SlotKind

log = logging.getLogger(__name__)

EMBED_SUCCESS_MESSAGE = "Secret file embedded successfully! Preview the result below:"
EXTRACT_SUCCESS_MESSAGE = "Secret file extracted successfully! Preview the result below:"

# Lower bound (dB) of each quality band, highest first
PSNR_BANDS = (
    (40.0, "excellent"),
    (30.0, "good"),
    (20.0, "acceptable"),
)
PSNR_GAUGE_FULL_SCALE_DB = 50.0


def psnr_label(psnr_db: float) -> str:
    """Qualitative label for a PSNR score."""
    for lower_bound, label in PSNR_BANDS:
        if psnr_db >= lower_bound:
            return label
    return "poor"


def psnr_gauge_percent(psnr_db: float) -> float:
    """Display-only gauge fill, clamped to [0, 100]."""
    return max(0.0, min(100.0, psnr_db / PSNR_GAUGE_FULL_SCALE_DB * 100))


class ActiveView(str, Enum):
    IDLE = "idle"
    NOTICE = "notice"
    EMBED = "embed"
    EXTRACT = "extract"
    PSNR = "psnr"
    ERROR = "error"


@dataclass(frozen=True)
class IdleView:
    active: ClassVar[ActiveView] = ActiveView.IDLE


@dataclass(frozen=True)
class NoticeView:
    active: ClassVar[ActiveView] = ActiveView.NOTICE

    message: str


@dataclass(frozen=True)
class ErrorView:
    active: ClassVar[ActiveView] = ActiveView.ERROR

    message: str


@dataclass(frozen=True)
class EmbedView:
    active: ClassVar[ActiveView] = ActiveView.EMBED

    message: str
    audio_url: str
    original_filename: Optional[str]
    size_bytes: int


@dataclass(frozen=True)
class ExtractView:
    active: ClassVar[ActiveView] = ActiveView.EXTRACT

    message: str
    url: str
    content_type: Optional[str]
    size_bytes: int
    text_preview: Optional[str] = None
    metadata: Optional[ExtractMetadata] = None

    @property
    def size_kb(self) -> str:
        return format_kb(self.size_bytes)

    @property
    def is_text(self) -> bool:
        return self.text_preview is not None


@dataclass(frozen=True)
class PsnrView:
    active: ClassVar[ActiveView] = ActiveView.PSNR

    psnr_db: float
    mse: float
    max_signal: float
    original_size_bytes: int
    modified_size_bytes: int
    label: str
    gauge_percent: float


ViewState = Union[IdleView, NoticeView, ErrorView, EmbedView, ExtractView, PsnrView]


class ResultPresentationRouter:
    """
    Decides which result view is active and feeds it display data.

    Binary results are registered with the ResourceLifecycleManager, which
    owns their transient URLs.
    """

    def __init__(self, resources: ResourceLifecycleManager):
        self.resources = resources
        self._current: ViewState = IdleView()

    @property
    def current(self) -> ViewState:
        return self._current

    def idle(self) -> ViewState:
        self._current = IdleView()
        return self._current

    def notice(self, message: str) -> ViewState:
        self._current = NoticeView(message)
        return self._current

    def present(self, outcome: OperationOutcome) -> ViewState:
        """Activates exactly one view for an operation outcome."""
        if not outcome.ok:
            # Held results stay registered so they remain downloadable.
            self._current = ErrorView(f"Error: {outcome.error}")
        elif isinstance(outcome.result, EmbedResult):
            self._current = self._present_embed(outcome.result)
        elif isinstance(outcome.result, ExtractResult):
            self._current = self._present_extract(outcome.result)
        elif isinstance(outcome.result, PsnrResult):
            self._current = self._present_psnr(outcome.result)
        else:
            raise TypeError(
                f"No view for {outcome.kind.value} result "
                f"{type(outcome.result).__name__}"
            )
        log.debug(f"Active view: {self._current.active.value}")
        return self._current

    def _present_embed(self, result: EmbedResult) -> EmbedView:
        self.resources.clear_all()
        url = self.resources.set_result(
            SlotKind.STEGO, result.audio_blob, result.original_filename
        )
        return EmbedView(
            message=EMBED_SUCCESS_MESSAGE,
            audio_url=url,
            original_filename=result.original_filename,
            size_bytes=result.audio_blob.size,
        )

    def _present_extract(self, result: ExtractResult) -> ExtractView:
        self.resources.clear_all()
        url = self.resources.set_result(SlotKind.EXTRACT, result.blob, result)
        preview = None
        if result.content_type and result.content_type.startswith("text/"):
            preview = result.blob.text()
        return ExtractView(
            message=EXTRACT_SUCCESS_MESSAGE,
            url=url,
            content_type=result.content_type,
            size_bytes=result.blob.size,
            text_preview=preview,
            metadata=result.metadata,
        )

    def _present_psnr(self, result: PsnrResult) -> PsnrView:
        self.resources.clear_all()
        return PsnrView(
            psnr_db=result.psnr_db,
            mse=result.mse,
            max_signal=result.max_signal,
            original_size_bytes=result.original_size_bytes,
            modified_size_bytes=result.modified_size_bytes,
            label=psnr_label(result.psnr_db),
            gauge_percent=psnr_gauge_percent(result.psnr_db),
        )
