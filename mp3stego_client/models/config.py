"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .requests import Method

DEFAULT_BASE_URL = "http://localhost:8080/api"

# Display metadata for the embedding methods offered by the service
METHOD_INFO = {
    Method.HEADER: {
        "name": "MP3 Header Steganography",
        "description": (
            "Header method embeds data in MP3 frame headers - more stealthy and robust."
        ),
        "key_hint": "(Optional for Header)",
    },
    Method.LSB: {
        "name": "LSB Steganography",
        "description": (
            "LSB method embeds data by modifying the least significant bits of audio"
            " samples - offers more capacity but less stealth."
        ),
        "key_hint": "(Required for LSB)",
    },
}


def get_method_info(method: Method) -> dict[str, str]:
    """Gets the display information for a method from the central map."""
    return METHOD_INFO.get(
        method, {"name": "Unknown", "description": "", "key_hint": ""}
    )


class ClientConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Service
    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = 15.0

    # Form defaults
    default_method: Method = Method.LSB
    default_lsb_bits: int = 1

    # Output
    download_dir: str = "."
    log_json: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the service URL is an absolute http(s) URL without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Service URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Connect timeout must be a positive number of seconds.")
        return v

    @field_validator("default_lsb_bits")
    @classmethod
    def validate_lsb_bits(cls, v: int) -> int:
        """Ensures the default depth is one the service accepts."""
        if v < 1 or v > 4:
            raise ValueError("LSB bits must be between 1 and 4.")
        return v

    @field_validator("download_dir")
    @classmethod
    def validate_download_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Download directory cannot be empty.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
