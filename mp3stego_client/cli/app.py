"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from mp3stego_client import __version__
from mp3stego_client.api.client import StegoAPIClient
from mp3stego_client.core.presenter import ErrorView, ViewState
from mp3stego_client.core.resources import ResourceLifecycleManager
from mp3stego_client.core.save import SaveRequest, SaveService
from mp3stego_client.core.session import StegoSession
from mp3stego_client.core.validation import filter_key_input
from mp3stego_client.models.config import ClientConfig, get_method_info
from mp3stego_client.models.requests import (
    EmbedDraft,
    ExtractDraft,
    Method,
    PsnrDraft,
    files_of,
)
from mp3stego_client.storage.config_manager import ConfigManager
from mp3stego_client.utils.structured_logger import create_structured_logger

from .formatters import (
    print_capacity,
    print_capacity_warning,
    print_config,
    print_connection_status,
    print_file_info,
    print_view_state,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("mp3stego_client")

app = typer.Typer(
    name="mp3stego",
    help=(
        "Hide files inside MP3 audio and get them back out, using a remote"
        " steganography service. Use 'mp3stego <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "mp3stego-client"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """MP3 Steganography Client"""
    if version:
        console.print(f"[bold]mp3stego[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("mp3stego_client").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]mp3stego init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Root URL of the steganography service API."
    ),
    download_dir: Optional[str] = typer.Option(
        None, "--download-dir", help="Directory where results are saved."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file with the service location."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {"base_url": base_url, "download_dir": download_dir}.items()
        if value is not None
    }
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Check the service with: [cyan]mp3stego health[/cyan]")


def _load_config() -> ClientConfig:
    return ConfigManager(CONFIG_FILE).load_config()


async def _prompt_for_path(request: SaveRequest) -> Optional[Path]:
    """Interactive save picker: asks for a path, seeded with the suggestion."""
    extensions = [ext for exts in request.format_filter.accept.values() for ext in exts]
    console.print(
        f"[dim]Format: {request.format_filter.description} ({', '.join(extensions)})[/dim]"
    )
    answer = await asyncio.to_thread(
        typer.prompt,
        "Save as ('-' to cancel)",
        default=request.suggested_filename,
        show_default=True,
    )
    answer = answer.strip()
    if answer in ("", "-"):
        return None
    if not request.format_filter.allows(answer):
        console.print(
            f"[yellow]⚠️  '{escape(answer)}' does not match the"
            f" {request.format_filter.description} format.[/yellow]"
        )
    return Path(answer)


class _SessionFactory:
    """Wires a session from the configuration, with optional JSONL event logs."""

    def __init__(
        self,
        config: ClientConfig,
        output_dir: Optional[Path] = None,
        interactive: bool = False,
    ):
        self.config = config
        log_dir = Path(config.config_path or CONFIG_DIR) / "logs"
        (
            self.base_logger,
            self.operation_logger,
            self.capacity_logger,
            self.resource_logger,
            self.api_logger,
        ) = create_structured_logger(log_dir=log_dir, enable_json=config.log_json)
        self.save_service = SaveService(
            output_dir or Path(config.download_dir),
            picker=_prompt_for_path if interactive else None,
        )

    def session(self) -> StegoSession:
        # Event loggers are only attached when JSONL logging is on.
        events = self.config.log_json
        api_client = StegoAPIClient(
            self.config.base_url,
            self.config.connect_timeout,
            api_logger=self.api_logger if events else None,
        )
        return StegoSession(
            api_client,
            save_service=self.save_service,
            resources=ResourceLifecycleManager(
                resource_logger=self.resource_logger if events else None
            ),
            operation_logger=self.operation_logger if events else None,
            capacity_logger=self.capacity_logger if events else None,
        )

    def close(self) -> None:
        self.base_logger.close()


def _run(factory: _SessionFactory, body):
    """Runs an async command body inside a session and closes everything after."""

    async def _runner():
        async with factory.session() as session:
            return await body(session)

    try:
        return asyncio.run(_runner())
    finally:
        factory.close()


def _finish(view: ViewState) -> None:
    print_view_state(view, console)
    if isinstance(view, ErrorView):
        raise typer.Exit(code=1)


def _save_result(saved: Optional[Path]) -> None:
    if saved is None:
        console.print("[yellow]⚠️  Save cancelled.[/yellow]")
    else:
        console.print(f"[bold green]✓ File saved successfully![/bold green] [dim]{saved}[/dim]")


@app.command()
def health():
    """Check whether the steganography service is reachable."""
    factory = _SessionFactory(_load_config())

    async def _body(session: StegoSession):
        status = await session.check_connection()
        print_connection_status(status)
        return status

    status = _run(factory, _body)
    if not status.connected:
        raise typer.Exit(code=1)


@app.command()
def capacity(
    mp3_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Carrier MP3."),
    method: Optional[Method] = typer.Option(
        None, "--method", "-m", help="Embedding method."
    ),
    lsb_bits: Optional[int] = typer.Option(
        None, "--lsb-bits", "-b", help="LSB bit-depth (1-4), lsb method only."
    ),
):
    """Show how many bytes an MP3 can hide."""
    config = _load_config()
    factory = _SessionFactory(config)
    method = method or config.default_method
    lsb_bits = lsb_bits or config.default_lsb_bits

    async def _body(session: StegoSession):
        files = files_of(mp3_file)
        print_file_info(await session.mp3_selected(files, method, lsb_bits))
        return session.capacity.report

    report = _run(factory, _body)
    if report is None:
        console.print("[yellow]⚠️  Capacity is unknown for this file.[/yellow]")
        raise typer.Exit(code=1)
    print_capacity(report)


def _describe_method(method: Method) -> None:
    info = get_method_info(method)
    log.debug(f"Method: {info['name']} - {info['description']}")
    console.print(f"[dim]{info['name']}: key {info['key_hint']}[/dim]")


@app.command()
def embed(
    mp3_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Carrier MP3."),
    secret_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="File to hide."
    ),
    key: str = typer.Option(..., "--key", "-k", prompt=True, hide_input=True),
    method: Optional[Method] = typer.Option(None, "--method", "-m"),
    lsb_bits: Optional[int] = typer.Option(None, "--lsb-bits", "-b"),
    encrypt: bool = typer.Option(False, "--encrypt", help="Encrypt the secret with the key."),
    key_position: bool = typer.Option(
        False, "--key-position", help="Use the key to scatter embedding positions."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Where to save the stego MP3."
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Ask where to save the result."
    ),
):
    """Hide a secret file inside an MP3."""
    config = _load_config()
    factory = _SessionFactory(config, output_dir, interactive)
    method = method or config.default_method
    _describe_method(method)

    filtered = filter_key_input(key)
    if filtered.stripped:
        console.print(f"[yellow]⚠️  {filtered.warning}[/yellow]")

    draft = EmbedDraft(
        mp3_files=files_of(mp3_file),
        secret_files=files_of(secret_file),
        key=key,
        method=method,
        lsb_bits=lsb_bits if lsb_bits is not None else config.default_lsb_bits,
        use_encryption=encrypt,
        use_key_for_position=key_position,
    )

    async def _body(session: StegoSession):
        print_file_info(
            await session.mp3_selected(draft.mp3_files, draft.method, draft.lsb_bits)
        )
        print_capacity(session.capacity.report)
        print_capacity_warning(session.secret_selected(draft.secret_files))

        view = await session.submit_embed(draft)
        if not isinstance(view, ErrorView):
            print_view_state(view, console)
            _save_result(await session.save_stego())
        return view

    view = _run(factory, _body)
    if isinstance(view, ErrorView):
        _finish(view)


@app.command()
def extract(
    mp3_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stego MP3."),
    key: str = typer.Option("", "--key", "-k", help="Key used when embedding."),
    method: Optional[Method] = typer.Option(None, "--method", "-m"),
    lsb_bits: Optional[int] = typer.Option(None, "--lsb-bits", "-b"),
    encrypt: bool = typer.Option(False, "--encrypt", help="The secret was encrypted."),
    key_position: bool = typer.Option(
        False, "--key-position", help="Positions were scattered with the key."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Where to save the extracted file."
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Ask where to save the result."
    ),
):
    """Recover a hidden file from a stego MP3."""
    config = _load_config()
    factory = _SessionFactory(config, output_dir, interactive)
    method = method or config.default_method
    _describe_method(method)

    draft = ExtractDraft(
        mp3_files=files_of(mp3_file),
        key=key,
        method=method,
        lsb_bits=lsb_bits if lsb_bits is not None else config.default_lsb_bits,
        use_encryption=encrypt,
        use_key_for_position=key_position,
    )

    async def _body(session: StegoSession):
        view = await session.submit_extract(draft)
        if not isinstance(view, ErrorView):
            print_view_state(view, console)
            _save_result(await session.save_extracted())
        return view

    view = _run(factory, _body)
    if isinstance(view, ErrorView):
        _finish(view)


@app.command()
def psnr(
    original_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    modified_file: Path = typer.Argument(..., exists=True, dir_okay=False),
):
    """Measure how much embedding degraded the audio (PSNR)."""
    factory = _SessionFactory(_load_config())
    draft = PsnrDraft(
        original_files=files_of(original_file),
        modified_files=files_of(modified_file),
    )

    async def _body(session: StegoSession):
        return await session.submit_psnr(draft)

    _finish(_run(factory, _body))
