"""
mp3stego-client: an async client for a remote MP3 steganography service.
"""

__version__ = "1.0.0"
