"""
Provides the descriptive information shown after a file is selected.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from mutagen.mp3 import MP3, HeaderNotFoundError

from mp3stego_client.models.requests import SelectedFile
from mp3stego_client.utils.formatting import format_mb

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    """Name and size of a selected file, plus stream details for MP3s."""

    name: str
    size_bytes: int
    duration_s: Optional[float] = None
    bitrate_kbps: Optional[int] = None

    @property
    def size_mb(self) -> str:
        return format_mb(self.size_bytes)

    @property
    def summary(self) -> str:
        return f"{self.name} ({self.size_mb} MB)"


def probe_mp3(path: str) -> tuple[Optional[float], Optional[int]]:
    """
    Reads duration and bitrate from an MP3's stream info.

    Returns:
        (duration in seconds, bitrate in kbps), or (None, None) when the file
        cannot be parsed as MP3.
    """
    try:
        audio = MP3(path)
    except HeaderNotFoundError:
        log.debug(f"No MP3 frame header found in '{path}'.")
        return None, None
    except Exception as e:
        log.debug(f"MP3 probe failed for '{path}' with unexpected error: {e}")
        return None, None
    if not audio.info or audio.info.length <= 0:
        return None, None
    return audio.info.length, int(audio.info.bitrate / 1000)


def describe_file(file: Optional[SelectedFile]) -> Optional[FileInfo]:
    """Builds the FileInfo for a selection; MP3s get stream details as well."""
    if file is None:
        return None
    duration, bitrate = None, None
    if file.media_type == "audio/mpeg":
        duration, bitrate = probe_mp3(str(file.path))
    return FileInfo(
        name=file.name,
        size_bytes=file.size,
        duration_s=duration,
        bitrate_kbps=bitrate,
    )
