"""
Media Handling Layer.

This package inspects selected audio files for display.
"""

from .probe import FileInfo, describe_file

__all__ = ["FileInfo", "describe_file"]
