"""
Utilities for handling file paths and file names.
"""

from pathlib import Path

from pathvalidate import sanitize_filename


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def sanitize_name(name: str) -> str:
    """
    Makes a name taken from a service response safe to use as a file name.

    Any directory components are dropped before sanitizing.
    """
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    return sanitize_filename(name, platform="auto").strip()


def unique_path(path: Path) -> Path:
    """
    Returns `path` if it is free, otherwise the first free 'stem (n).suffix'.
    """
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1
