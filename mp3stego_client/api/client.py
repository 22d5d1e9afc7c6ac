"""
Async client for the MP3 steganography service.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type, TypeVar

import aiofiles
import aiohttp
from pydantic import BaseModel

from mp3stego_client import __version__
from mp3stego_client.exceptions import DecodingFailure, TransportFailure
from mp3stego_client.models.config import DEFAULT_BASE_URL
from mp3stego_client.models.requests import (
    CapacityRequest,
    EmbedRequest,
    ExtractRequest,
    OperationRequest,
    PsnrRequest,
    SelectedFile,
)
from mp3stego_client.models.results import (
    Blob,
    CapacityReport,
    EmbedResult,
    ExtractMetadata,
    ExtractResult,
    HealthStatus,
    PsnrReport,
    PsnrResult,
)

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Shown when the service gives no message of its own
GENERIC_FAILURE_MESSAGES = {
    "health": "Health check failed",
    "embed": "Embedding failed",
    "extract": "Extraction failed",
    "capacity": "Capacity calculation failed",
    "psnr": "PSNR calculation failed",
}


@dataclass
class ServiceResponse:
    """A fully consumed response: status, headers and body bytes."""

    status: int
    headers: Mapping[str, str]
    body: bytes

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")


class StegoAPIClient:
    """
    Async client for the steganography service's HTTP API.

    There is no retry policy: a failed call surfaces as exactly one
    TransportFailure or DecodingFailure.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        connect_timeout: float = 15.0,
        api_logger=None,
    ):
        """
        Initializes the API client.

        Args:
            base_url: Root of the service API, e.g. 'http://localhost:8080/api'.
            connect_timeout: Seconds allowed for establishing a connection.
            api_logger: Optional APILogger for structured request events.
        """
        self.base_url = base_url.rstrip("/")
        self.connect_timeout = connect_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._events = api_logger

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": f"mp3stego-client/{__version__}"},
                # Uploads and processing may take arbitrarily long; only the
                # connection attempt is bounded.
                timeout=aiohttp.ClientTimeout(
                    total=None, sock_connect=self.connect_timeout
                ),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @staticmethod
    async def _add_file(form: aiohttp.FormData, name: str, file: SelectedFile) -> None:
        """
        Raises:
            TransportFailure: If the file can no longer be read.
        """
        try:
            async with aiofiles.open(file.path, "rb") as f:
                data = await f.read()
        except OSError as e:
            log.debug(f"Could not read '{file.path}' for upload: {e}")
            raise TransportFailure(f"Could not read '{file.name}'") from e
        form.add_field(
            name,
            data,
            filename=file.name,
            content_type=file.media_type or "application/octet-stream",
        )

    async def _build_form(self, request: OperationRequest) -> aiohttp.FormData:
        """Builds the multipart body for a request."""
        # Text fields are sent as Latin-1 so the key arrives as one byte per code point.
        form = aiohttp.FormData(charset="latin-1")
        if isinstance(request, PsnrRequest):
            await self._add_file(form, "original_file", request.original_file)
            await self._add_file(form, "modified_file", request.modified_file)
        else:
            await self._add_file(form, "mp3_file", request.mp3_file)
            if isinstance(request, EmbedRequest):
                await self._add_file(form, "secret_file", request.secret_file)
        for key, value in request.form_fields().items():
            form.add_field(key, value)
        return form

    @staticmethod
    def _service_message(body: bytes) -> Optional[str]:
        """Extracts the 'message' field of a JSON error body, if any."""
        try:
            payload = json.loads(body)
        except ValueError:
            return None
        if isinstance(payload, dict):
            message = payload.get("message")
            if isinstance(message, str) and message.strip():
                return message
        return None

    async def api_call(
        self, operation: str, form: Optional[aiohttp.FormData] = None
    ) -> ServiceResponse:
        """
        Calls one service operation and consumes the response body.

        A GET is issued when no form is given, a multipart POST otherwise.

        Raises:
            TransportFailure: On network errors or a non-success status.
        """
        await self._initialize_session()
        url = f"{self.base_url}/{operation}"
        generic = GENERIC_FAILURE_MESSAGES.get(operation, "Request failed")
        if self._events:
            self._events.request_started(operation)

        start_time = time.monotonic()
        try:
            if form is None:
                request_ctx = self._session.get(url)
            else:
                request_ctx = self._session.post(url, data=form)
            async with request_ctx as r:
                response = ServiceResponse(r.status, r.headers, await r.read())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            log.debug(f"API call to {operation} failed: {e!r}")
            if self._events:
                self._events.request_failed(operation, 0, str(e), duration_ms)
            raise TransportFailure(generic) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        if not 200 <= response.status < 300:
            message = self._service_message(response.body) or generic
            log.debug(f"API call to {operation} returned {response.status}: {message}")
            if self._events:
                self._events.request_failed(
                    operation, response.status, message, duration_ms
                )
            raise TransportFailure(message, status=response.status)

        if self._events:
            self._events.request_completed(
                operation, response.status, duration_ms, len(response.body)
            )
        return response

    @staticmethod
    def _parse_json(
        response: ServiceResponse, model: Type[ModelT], operation: str
    ) -> ModelT:
        """
        Raises:
            DecodingFailure: If the body is not the expected JSON document.
        """
        try:
            payload: Any = json.loads(response.body)
            return model.model_validate(payload)
        except ValueError as e:
            log.debug(f"Could not decode {operation} response: {e}")
            raise DecodingFailure(GENERIC_FAILURE_MESSAGES[operation]) from e

    # Public API Methods
    async def check_health(self) -> HealthStatus:
        response = await self.api_call("health")
        return self._parse_json(response, HealthStatus, "health")

    async def embed(self, request: EmbedRequest) -> EmbedResult:
        response = await self.api_call("embed", await self._build_form(request))
        blob = Blob(response.body, response.content_type or "audio/mpeg")
        return EmbedResult(audio_blob=blob, original_filename=request.mp3_file.name)

    async def extract(self, request: ExtractRequest) -> ExtractResult:
        response = await self.api_call("extract", await self._build_form(request))
        return ExtractResult(
            blob=Blob(response.body, response.content_type),
            content_type=response.content_type,
            metadata=ExtractMetadata.from_headers(response.headers),
        )

    async def capacity(self, request: CapacityRequest) -> CapacityReport:
        response = await self.api_call("capacity", await self._build_form(request))
        return self._parse_json(response, CapacityReport, "capacity")

    async def psnr(self, request: PsnrRequest) -> PsnrResult:
        response = await self.api_call("psnr", await self._build_form(request))
        return self._parse_json(response, PsnrReport, "psnr").to_result()
