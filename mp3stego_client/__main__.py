"""
Console-script entry point: runs the Typer app and turns client errors into
a Rich error panel with exit code 1.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from mp3stego_client.cli import app as cli_app
from mp3stego_client.cli.formatters import format_error_with_suggestions
from mp3stego_client.exceptions import (
    ConfigurationError,
    StegoClientError,
    TransportFailure,
)


def _error_context(error: StegoClientError) -> dict | None:
    """Details worth showing under the suggestions for a client error."""
    if isinstance(error, TransportFailure) and error.status is not None:
        return {"http_status": error.status}
    if isinstance(error, ConfigurationError):
        return {"config_file": str(cli_app.CONFIG_FILE)}
    return None


def main() -> None:
    # Status glyphs (✓ ✗ ⚠️) need a UTF-8 stream on Windows consoles.
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    console = Console(stderr=True)

    try:
        cli_app.app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Operation cancelled.[/yellow]")
        sys.exit(130)
    except StegoClientError as e:
        console.print(format_error_with_suggestions(e, _error_context(e)))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        logging.getLogger("mp3stego_client").debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
