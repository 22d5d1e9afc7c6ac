"""
Service API Layer.

This package handles all communication with the steganography service.
"""

from .client import StegoAPIClient

__all__ = ["StegoAPIClient"]
