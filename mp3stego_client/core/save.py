"""
Negotiates where and in which format a result blob is saved.

The negotiator only proposes a target. The write goes through the interactive
save picker when one is available, otherwise through the fallback download
path; both receive the same blob and suggested filename.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import aiofiles

from mp3stego_client.models.results import Blob, base_content_type
from mp3stego_client.utils.path import create_dir, sanitize_name, unique_path

log = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".dat"
DEFAULT_STEGO_FILENAME = "stego_audio.mp3"
DEFAULT_EXTRACT_BASENAME = "extracted_secret"

# Known content type -> (extension, accepted extensions, filter description)
CONTENT_TYPE_MAP: Dict[str, tuple] = {
    "text/plain": (".txt", [".txt"], "Text files"),
    "image/jpeg": (".jpg", [".jpg", ".jpeg"], "JPEG images"),
    "image/png": (".png", [".png"], "PNG images"),
    "image/gif": (".gif", [".gif"], "GIF images"),
    "image/bmp": (".bmp", [".bmp"], "BMP images"),
    "application/pdf": (".pdf", [".pdf"], "PDF files"),
    "audio/mpeg": (".mp3", [".mp3"], "Audio files"),
    "audio/wav": (".wav", [".wav"], "Audio files"),
    "video/mp4": (".mp4", [".mp4"], "MP4 videos"),
    "application/zip": (".zip", [".zip"], "ZIP archives"),
    "application/json": (".json", [".json"], "JSON files"),
}


@dataclass(frozen=True)
class FormatFilter:
    """Save-dialog filter: a description and accepted extensions per type."""

    description: str
    accept: Dict[str, List[str]] = field(default_factory=dict)

    def allows(self, filename: str) -> bool:
        extensions = [ext for exts in self.accept.values() for ext in exts]
        if "*" in extensions:
            return True
        return any(filename.lower().endswith(ext) for ext in extensions)


ANY_FILE_FILTER = FormatFilter("All files", {"*/*": ["*"]})
STEGO_AUDIO_FILTER = FormatFilter(
    "Audio files",
    {"audio/mpeg": [".mp3"], "audio/*": [".mp3", ".wav", ".m4a"]},
)


@dataclass(frozen=True)
class SaveProposal:
    suggested_filename: str
    format_filter: FormatFilter


@dataclass(frozen=True)
class SaveRequest:
    """What every save path is handed, whichever one ends up executing."""

    blob: Blob
    suggested_filename: str
    format_filter: FormatFilter = ANY_FILE_FILTER


# Interactive picker: returns the chosen path, or None if the user cancelled.
SavePicker = Callable[[SaveRequest], Awaitable[Optional[Path]]]


def extension_for(content_type: Optional[str]) -> str:
    entry = CONTENT_TYPE_MAP.get(base_content_type(content_type))
    return entry[0] if entry else DEFAULT_EXTENSION


def filter_for(content_type: Optional[str]) -> FormatFilter:
    key = base_content_type(content_type)
    entry = CONTENT_TYPE_MAP.get(key)
    if not entry:
        return ANY_FILE_FILTER
    _, accepted, description = entry
    return FormatFilter(description, {key: list(accepted)})


def propose_save(
    blob: Blob, declared_content_type: Optional[str], default_base_name: str
) -> SaveProposal:
    """
    Proposes a filename and save filter for an opaque payload.

    Unknown content types get the '.dat' extension and an any-file filter.
    """
    base = sanitize_name(default_base_name) or DEFAULT_EXTRACT_BASENAME
    suggested = f"{base}{extension_for(declared_content_type)}"
    log.debug(
        f"Save proposal for {blob.size} bytes of "
        f"'{declared_content_type or 'unknown'}': {suggested}"
    )
    return SaveProposal(suggested, filter_for(declared_content_type))


def propose_stego_save(blob: Blob, original_filename: Optional[str]) -> SaveProposal:
    """Proposes 'stego_<carrier name>' for an embed result."""
    name = sanitize_name(original_filename or "")
    suggested = f"stego_{name}" if name else DEFAULT_STEGO_FILENAME
    return SaveProposal(suggested, STEGO_AUDIO_FILTER)


async def write_blob(blob: Blob, destination: Path) -> Path:
    """Writes a blob to disk, creating parent directories."""
    create_dir(destination.parent)
    async with aiofiles.open(destination, "wb") as f:
        await f.write(blob.data)
    log.debug(f"Wrote {blob.size} bytes to '{destination}'")
    return destination


class SaveService:
    """Executes a save proposal through the picker or the fallback download."""

    def __init__(self, download_dir: Path, picker: Optional[SavePicker] = None):
        """
        Args:
            download_dir: Directory used by the fallback download path.
            picker: Optional interactive save primitive.
        """
        self.download_dir = Path(download_dir).expanduser()
        self.picker = picker

    async def save(self, blob: Blob, proposal: SaveProposal) -> Optional[Path]:
        """
        Saves a blob.

        Returns:
            The written path, or None when the user cancelled the picker.
        """
        request = SaveRequest(blob, proposal.suggested_filename, proposal.format_filter)
        if self.picker is not None:
            return await self._save_interactive(request)
        return await self._download(request)

    async def _save_interactive(self, request: SaveRequest) -> Optional[Path]:
        destination = await self.picker(request)
        if destination is None:
            log.debug("Save cancelled by user.")
            return None
        return await write_blob(request.blob, Path(destination).expanduser())

    async def _download(self, request: SaveRequest) -> Path:
        # Like a browser download: never overwrite, pick 'name (1).ext' instead.
        destination = unique_path(self.download_dir / request.suggested_filename)
        return await write_blob(request.blob, destination)
