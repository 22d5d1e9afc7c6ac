"""
Request-side data structures: selected files, form drafts and the immutable
operation requests built from them.
"""

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, Optional, Tuple, Union


class Method(str, Enum):
    """Embedding technique understood by the service."""

    HEADER = "header"
    LSB = "lsb"


class OperationKind(str, Enum):
    """Logical submission slots. At most one request per slot is in flight."""

    EMBED = "embed"
    EXTRACT = "extract"
    CAPACITY = "capacity"
    PSNR = "psnr"


@dataclass(frozen=True)
class SelectedFile:
    """A file picked by the user, with its declared media type."""

    name: str
    path: Path
    size: int
    media_type: str = ""

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SelectedFile":
        """
        Describes a file on disk. The media type is guessed from the file name,
        mirroring what a browser reports for a picked file.
        """
        path = Path(path)
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            path=path,
            size=path.stat().st_size,
            media_type=media_type or "",
        )

    @property
    def identity(self) -> Tuple[str, str, int]:
        return (str(self.path), self.name, self.size)


# A file input may hold zero, one or several selections.
FileInput = Tuple[SelectedFile, ...]

LsbBitsInput = Union[int, str, None]


def parse_lsb_bits(raw: LsbBitsInput) -> Optional[int]:
    """
    Parses a bit-depth as entered in the form.

    Returns the integer depth, or None when the value is not an integer.
    Range checking is left to validation.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def single(files: FileInput) -> SelectedFile:
    """Returns the only selection of a validated file input."""
    if len(files) != 1:
        raise ValueError(f"Expected exactly one selected file, got {len(files)}.")
    return files[0]


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class EmbedRequest:
    kind: ClassVar[OperationKind] = OperationKind.EMBED

    mp3_file: SelectedFile
    secret_file: SelectedFile
    key: str
    method: Method = Method.LSB
    lsb_bits: int = 1
    use_encryption: bool = False
    use_key_for_position: bool = False
    mode: str = "file"

    def form_fields(self) -> Dict[str, str]:
        fields = {
            "method": self.method.value,
            "key": self.key,
            "use_encryption": _flag(self.use_encryption),
            "use_key_for_position": _flag(self.use_key_for_position),
            "mode": self.mode,
        }
        if self.method is Method.LSB:
            fields["lsb_bits"] = str(self.lsb_bits)
        return fields


@dataclass(frozen=True)
class ExtractRequest:
    kind: ClassVar[OperationKind] = OperationKind.EXTRACT

    mp3_file: SelectedFile
    key: str = ""
    method: Method = Method.LSB
    lsb_bits: int = 1
    use_encryption: bool = False
    use_key_for_position: bool = False
    mode: str = "file"

    def form_fields(self) -> Dict[str, str]:
        fields = {
            "method": self.method.value,
            "key": self.key,
            "use_encryption": _flag(self.use_encryption),
            "use_key_for_position": _flag(self.use_key_for_position),
            "mode": self.mode,
        }
        if self.method is Method.LSB:
            fields["lsb_bits"] = str(self.lsb_bits)
        return fields


@dataclass(frozen=True)
class CapacityRequest:
    kind: ClassVar[OperationKind] = OperationKind.CAPACITY

    mp3_file: SelectedFile
    method: Method = Method.HEADER
    lsb_bits: int = 1

    def form_fields(self) -> Dict[str, str]:
        fields = {"method": self.method.value}
        if self.method is Method.LSB:
            fields["lsb_bits"] = str(self.lsb_bits)
        return fields

    @property
    def selection_key(self) -> Tuple:
        """Identifies the (carrier, method, depth) selection this query is for."""
        bits = self.lsb_bits if self.method is Method.LSB else None
        return (self.mp3_file.identity, self.method, bits)


@dataclass(frozen=True)
class PsnrRequest:
    kind: ClassVar[OperationKind] = OperationKind.PSNR

    original_file: SelectedFile
    modified_file: SelectedFile

    def form_fields(self) -> Dict[str, str]:
        return {}


OperationRequest = Union[EmbedRequest, ExtractRequest, CapacityRequest, PsnrRequest]


@dataclass(frozen=True)
class EmbedDraft:
    """Raw state of the embed form, as entered by the user."""

    mp3_files: FileInput = ()
    secret_files: FileInput = ()
    key: str = ""
    method: Method = Method.LSB
    lsb_bits: LsbBitsInput = 1
    use_encryption: bool = False
    use_key_for_position: bool = False
    mode: str = "file"

    def build_request(self) -> EmbedRequest:
        """Builds the request. Only call on a draft that passed validation."""
        return EmbedRequest(
            mp3_file=single(self.mp3_files),
            secret_file=single(self.secret_files),
            key=self.key,
            method=self.method,
            lsb_bits=parse_lsb_bits(self.lsb_bits) or 1,
            use_encryption=self.use_encryption,
            use_key_for_position=self.use_key_for_position,
            mode=self.mode,
        )


@dataclass(frozen=True)
class ExtractDraft:
    """Raw state of the extract form, as entered by the user."""

    mp3_files: FileInput = ()
    key: str = ""
    method: Method = Method.LSB
    lsb_bits: LsbBitsInput = 1
    use_encryption: bool = False
    use_key_for_position: bool = False
    mode: str = "file"

    def build_request(self) -> ExtractRequest:
        """Builds the request. Only call on a draft that passed validation."""
        return ExtractRequest(
            mp3_file=single(self.mp3_files),
            key=self.key,
            method=self.method,
            lsb_bits=parse_lsb_bits(self.lsb_bits) or 1,
            use_encryption=self.use_encryption,
            use_key_for_position=self.use_key_for_position,
            mode=self.mode,
        )


@dataclass(frozen=True)
class PsnrDraft:
    """Raw state of the PSNR form."""

    original_files: FileInput = ()
    modified_files: FileInput = ()

    def build_request(self) -> PsnrRequest:
        return PsnrRequest(
            original_file=single(self.original_files),
            modified_file=single(self.modified_files),
        )


Draft = Union[EmbedDraft, ExtractDraft, PsnrDraft]


def files_of(*paths: Optional[Union[str, Path]]) -> FileInput:
    """Builds a file input from zero or more paths, skipping empty entries."""
    return tuple(SelectedFile.from_path(p) for p in paths if p)
