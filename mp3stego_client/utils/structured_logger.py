"""
Event logging for the client session.

Every event goes to the regular `logging` hierarchy as a one-line summary and,
when enabled, to a JSON Lines file with one object per event.
"""

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Optional


class StructuredLogger:
    """
    Emits named events with keyword context.

    Example:
        events = StructuredLogger("mp3stego_client", log_dir=Path("logs"))
        events.info("operation_completed", operation="embed", duration_s=0.8)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Name of the `logging` logger that receives console summaries.
            log_dir: Directory for the JSONL file; JSON output is off without it.
            enable_json: Write events to a JSONL file in `log_dir`.
            enable_console: Forward a summary of each event to `logging`.
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console
        self._logger = logging.getLogger(name)
        self._session_id = uuid.uuid4().hex[:12]
        self._sink: Optional[IO[str]] = None

        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = log_dir / f"mp3stego_{stamp}_{self._session_id}.jsonl"
            self._sink = open(path, "a", encoding="utf-8")  # noqa: SIM115

    @property
    def json_path(self) -> Path | None:
        return Path(self._sink.name) if self._sink else None

    @property
    def session_id(self) -> str:
        return self._session_id

    @staticmethod
    def _summary(event: str, context: dict[str, Any]) -> str:
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        return f"[{event}] {fields}".rstrip()

    def _append(self, level_name: str, event: str, context: dict[str, Any]) -> None:
        if self._sink is None or self._sink.closed:
            return
        record = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self._session_id,
            "level": level_name,
            "event": event,
            **context,
        }
        try:
            self._sink.write(json.dumps(record, default=str) + "\n")
            self._sink.flush()
        except (OSError, TypeError, ValueError) as e:
            print(f"Could not write event log entry: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            # Event names are bracketed, so markup rendering must stay off.
            self._logger.log(level, self._summary(event, context), extra={"markup": False})
        if self.enable_json:
            self._append(logging.getLevelName(level), event, context)

    def debug(self, event: str, **context) -> None:
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        if self._sink is not None and not self._sink.closed:
            self._sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class _EventGroup:
    """Base for the per-concern event helpers sharing one StructuredLogger."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger


class OperationLogger(_EventGroup):
    """Submissions of embed, extract and PSNR operations."""

    def submitted(self, operation: str, **fields):
        self.logger.info("operation_submitted", operation=operation, **fields)

    def completed(self, operation: str, duration_s: float):
        self.logger.info(
            "operation_completed", operation=operation, duration_s=round(duration_s, 2)
        )

    def failed(self, operation: str, error: str, stage: str):
        """`stage` is 'validation' or 'service'."""
        self.logger.error("operation_failed", operation=operation, error=error, stage=stage)

    def rejected(self, operation: str, reason: str):
        self.logger.warning("operation_rejected", operation=operation, reason=reason)


class CapacityLogger(_EventGroup):
    """Capacity queries and what became of their answers."""

    def queried(self, mp3_name: str, method: str, token: int):
        self.logger.debug("capacity_queried", mp3=mp3_name, method=method, token=token)

    def applied(self, mp3_name: str, capacity_bytes: int, token: int):
        self.logger.debug(
            "capacity_applied", mp3=mp3_name, capacity_bytes=capacity_bytes, token=token
        )

    def discarded(self, mp3_name: str, token: int, current_token: int):
        self.logger.debug(
            "capacity_discarded_stale",
            mp3=mp3_name,
            token=token,
            current_token=current_token,
        )

    def failed(self, mp3_name: str, error: str):
        self.logger.debug("capacity_failed", mp3=mp3_name, error=error)


class ResourceLogger(_EventGroup):
    """Registration and release of result blobs."""

    def registered(self, slot: str, url: str, size_bytes: int):
        self.logger.debug("resource_registered", slot=slot, url=url, size_bytes=size_bytes)

    def released(self, slot: str, url: str):
        self.logger.debug("resource_released", slot=slot, url=url)


class APILogger(_EventGroup):
    """HTTP calls to the steganography service."""

    def request_started(self, endpoint: str):
        self.logger.debug("api_request_started", endpoint=endpoint)

    def request_completed(
        self, endpoint: str, status_code: int, duration_ms: float, size_bytes: int
    ):
        self.logger.debug(
            "api_request_completed",
            endpoint=endpoint,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            size_bytes=size_bytes,
        )

    def request_failed(
        self, endpoint: str, status_code: int, error: str, duration_ms: float
    ):
        # status_code is 0 when no response was received
        self.logger.error(
            "api_request_failed",
            endpoint=endpoint,
            status_code=status_code,
            error=error,
            duration_ms=round(duration_ms, 2),
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, OperationLogger, CapacityLogger, ResourceLogger, APILogger]:
    """
    Builds the shared event logger and its per-concern helpers.

    Returns:
        (base_logger, operation_logger, capacity_logger, resource_logger,
        api_logger)
    """
    base = StructuredLogger("mp3stego_client.events", log_dir=log_dir, enable_json=enable_json)
    return (
        base,
        OperationLogger(base),
        CapacityLogger(base),
        ResourceLogger(base),
        APILogger(base),
    )
