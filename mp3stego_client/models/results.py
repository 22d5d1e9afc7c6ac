"""
Result-side data structures: binary blobs, service reports and the
operation outcomes handed to the presentation router.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from pydantic import BaseModel, Field

from .requests import OperationKind


def base_content_type(content_type: Optional[str]) -> str:
    """Strips parameters such as '; charset=utf-8' and lowercases the type."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class Blob:
    """Immutable binary payload with its declared content type."""

    data: bytes = field(repr=False)
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self) -> str:
        """Decodes the payload as text, honouring a declared charset."""
        charset = "utf-8"
        if self.content_type:
            for param in self.content_type.split(";")[1:]:
                name, _, value = param.partition("=")
                if name.strip().lower() == "charset" and value.strip():
                    charset = value.strip().strip('"')
        try:
            return self.data.decode(charset, errors="replace")
        except LookupError:
            return self.data.decode("utf-8", errors="replace")


def _header_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class ExtractMetadata:
    """Descriptive metadata the service attaches to an extraction."""

    original_filename: Optional[str] = None
    file_type: Optional[str] = None
    secret_size_bytes: Optional[int] = None
    used_encryption: bool = False
    used_key_for_position: bool = False
    lsb_bits: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["ExtractMetadata"]:
        """
        Reads the X-* extraction headers.

        Returns None when the service did not expose metadata for this result.
        """
        if headers.get("X-Original-Filename") is None:
            return None
        return cls(
            original_filename=headers.get("X-Original-Filename"),
            file_type=headers.get("X-File-Type") or None,
            secret_size_bytes=_header_int(headers.get("X-Secret-Size")),
            used_encryption=headers.get("X-Used-Encryption") == "true",
            used_key_for_position=headers.get("X-Used-Key-Position") == "true",
            lsb_bits=_header_int(headers.get("X-LSB-Bits")),
        )


class HealthStatus(BaseModel):
    status: str
    time: str = ""


class CapacityReport(BaseModel):
    """Embedding capacity of one carrier for one method/depth."""

    success: bool = True
    message: str = ""
    capacity_bytes: int = Field(ge=0)
    capacity_readable: str = ""
    method: str = ""
    frame_count: int = Field(default=0, ge=0)

class PsnrReport(BaseModel):
    """Raw JSON body of a PSNR computation."""

    psnr: float
    mse: float
    max_signal: float
    original_size: int = Field(ge=0)
    modified_size: int = Field(ge=0)

    def to_result(self) -> "PsnrResult":
        return PsnrResult(
            psnr_db=self.psnr,
            mse=self.mse,
            max_signal=self.max_signal,
            original_size_bytes=self.original_size,
            modified_size_bytes=self.modified_size,
        )


@dataclass(frozen=True)
class EmbedResult:
    audio_blob: Blob
    original_filename: Optional[str] = None


@dataclass(frozen=True)
class ExtractResult:
    blob: Blob
    content_type: Optional[str] = None
    metadata: Optional[ExtractMetadata] = None


@dataclass(frozen=True)
class PsnrResult:
    psnr_db: float
    mse: float
    max_signal: float
    original_size_bytes: int
    modified_size_bytes: int


ResultSlot = Union[EmbedResult, ExtractResult, PsnrResult]


@dataclass(frozen=True)
class OperationOutcome:
    """Either a successful result tagged by operation kind or a failure message."""

    kind: OperationKind
    result: Optional[ResultSlot] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, kind: OperationKind, result: ResultSlot) -> "OperationOutcome":
        return cls(kind=kind, result=result)

    @classmethod
    def failure(cls, kind: OperationKind, message: str) -> "OperationOutcome":
        return cls(kind=kind, error=message)

    @property
    def ok(self) -> bool:
        return self.error is None
