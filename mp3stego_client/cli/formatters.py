"""
Functions for formatting and displaying data in the console using Rich.

This is the rendering adapter for the router's view-state: every string that
came from the service or from a file is escaped before it is printed.
"""

from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from mp3stego_client.core.capacity import CapacityCheck
from mp3stego_client.core.presenter import (
    EmbedView,
    ErrorView,
    ExtractView,
    IdleView,
    NoticeView,
    PsnrView,
    ViewState,
)
from mp3stego_client.core.session import ConnectionStatus
from mp3stego_client.media.probe import FileInfo
from mp3stego_client.models.results import CapacityReport
from mp3stego_client.utils.formatting import format_duration, format_size

PSNR_LABEL_STYLES = {
    "excellent": "bold green",
    "good": "green",
    "acceptable": "yellow",
    "poor": "bold red",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "TransportFailure": [
            "• Check that the steganography service is running.",
            "• Verify the service URL with `mp3stego --show-config`.",
            "• Run `mp3stego health` to test connectivity.",
        ],
        "DecodingFailure": [
            "• The service answered with an unexpected response.",
            "• Make sure the client and service versions match.",
        ],
        "ConfigurationError": [
            "• Run `mp3stego init --force` to write a fresh configuration.",
            "• Check the values shown by `mp3stego --show-config`.",
        ],
        "ValidationFailure": [
            "• Check the key, the selected files and the LSB bit-depth.",
        ],
        "NoResultError": [
            "• Run an embed or extract operation before saving.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{escape(str(config_path))}[/dim])",
            border_style="cyan",
        )
    )


def print_connection_status(status: ConnectionStatus):
    console = Console()
    if status.connected:
        console.print(f"[bold green]✓ {escape(status.message)}[/bold green]")
    else:
        console.print(f"[bold red]✗ {escape(status.message)}[/bold red]")


def print_file_info(info: Optional[FileInfo]):
    if info is None:
        return
    details = escape(info.summary)
    if info.duration_s is not None:
        details += f" [dim]· {format_duration(info.duration_s)}"
        if info.bitrate_kbps:
            details += f" · {info.bitrate_kbps} kbps"
        details += "[/dim]"
    Console().print(f"[cyan]♪[/cyan] {details}")


def render_capacity(report: Optional[CapacityReport]) -> Optional[RenderableType]:
    """Capacity panel, or None when capacity is unknown (the panel is hidden)."""
    if report is None:
        return None
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Capacity:", escape(report.capacity_readable))
    table.add_row("Method:", escape(report.method))
    table.add_row("Frames:", f"{report.frame_count} frames")
    return Panel(table, title="[bold]Embedding Capacity[/bold]", border_style="cyan")


def print_capacity(report: Optional[CapacityReport]):
    panel = render_capacity(report)
    if panel is not None:
        Console().print(panel)


def print_capacity_warning(check: CapacityCheck):
    if check.warning:
        Console().print(f"[bold yellow]⚠️  {escape(check.message)}[/bold yellow]")


def _message_panel(message: str, is_error: bool) -> Panel:
    style = "red" if is_error else "green"
    return Panel(
        Text(message, style=f"bold {style}"), border_style=style, expand=False
    )


def _render_embed(view: EmbedView) -> RenderableType:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Carrier:", escape(view.original_filename or "unknown"))
    table.add_row("Stego audio:", format_size(view.size_bytes))
    table.add_row("Preview URL:", f"[dim]{escape(view.audio_url)}[/dim]")
    grid = Table.grid(padding=(1, 0))
    grid.add_row(Text(view.message, style="bold green"))
    grid.add_row(table)
    return Panel(grid, title="[bold green]Embed Result[/bold green]", border_style="green")


def _render_extract(view: ExtractView) -> RenderableType:
    grid = Table.grid(padding=(1, 0))
    grid.add_row(Text(view.message, style="bold green"))

    if view.is_text:
        grid.add_row(
            Panel(Text(view.text_preview), title="Preview", box=box.SIMPLE, expand=True)
        )
    else:
        info = Text(justify="center", style="dim")
        info.append("Binary file detected\n")
        info.append(f"Size: {view.size_kb} KB\n")
        info.append(f"Type: {view.content_type or 'Unknown'}")
        grid.add_row(info)

    if view.metadata:
        meta = view.metadata
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="bold cyan")
        table.add_column()
        table.add_row("Original filename:", escape(meta.original_filename or "-"))
        table.add_row("File type:", escape(meta.file_type or "-"))
        if meta.secret_size_bytes is not None:
            table.add_row("Secret size:", format_size(meta.secret_size_bytes))
        table.add_row("Encryption:", "✓ Used" if meta.used_encryption else "✗ Not used")
        table.add_row(
            "Key positioning:",
            "✓ Used" if meta.used_key_for_position else "✗ Not used",
        )
        if meta.lsb_bits is not None:
            table.add_row("LSB bits:", str(meta.lsb_bits))
        grid.add_row(table)

    return Panel(
        grid, title="[bold green]Extract Result[/bold green]", border_style="green"
    )


def _render_psnr(view: PsnrView) -> RenderableType:
    style = PSNR_LABEL_STYLES.get(view.label, "white")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    table.add_row("PSNR:", f"[{style}]{view.psnr_db:.2f} dB ({view.label})[/{style}]")
    table.add_row("Quality:", ProgressBar(total=100, completed=view.gauge_percent, width=40))
    table.add_row("MSE:", f"{view.mse:.6f}")
    table.add_row("Max signal:", f"{view.max_signal:.0f}")
    table.add_row("Original size:", format_size(view.original_size_bytes))
    table.add_row("Modified size:", format_size(view.modified_size_bytes))
    return Panel(table, title="[bold]PSNR Analysis[/bold]", border_style=style)


def render_view_state(view: ViewState) -> Optional[RenderableType]:
    """Maps a view-state to a renderable. The idle view renders nothing."""
    if isinstance(view, IdleView):
        return None
    if isinstance(view, NoticeView):
        return _message_panel(view.message, is_error=False)
    if isinstance(view, ErrorView):
        return _message_panel(view.message, is_error=True)
    if isinstance(view, EmbedView):
        return _render_embed(view)
    if isinstance(view, ExtractView):
        return _render_extract(view)
    if isinstance(view, PsnrView):
        return _render_psnr(view)
    raise TypeError(f"Unknown view state: {type(view).__name__}")


def print_view_state(view: ViewState, console: Optional[Console] = None):
    renderable = render_view_state(view)
    if renderable is not None:
        (console or Console()).print(renderable)
