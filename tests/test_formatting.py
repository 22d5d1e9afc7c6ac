"""
Tests for formatting helpers and the Rich rendering of view-states.
"""

from pathlib import Path

import pytest
from rich.console import Console

from mp3stego_client.cli.formatters import (
    format_error_with_suggestions,
    render_capacity,
    render_view_state,
)
from mp3stego_client.core.presenter import (
    EmbedView,
    ErrorView,
    ExtractView,
    IdleView,
    PsnrView,
)
from mp3stego_client.exceptions import TransportFailure
from mp3stego_client.models.results import CapacityReport, ExtractMetadata
from mp3stego_client.utils.formatting import (
    format_duration,
    format_kb,
    format_mb,
    format_size,
)
from mp3stego_client.utils.path import sanitize_name, unique_path


def render(renderable) -> str:
    console = Console(width=100, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


@pytest.mark.unit
class TestFormatting:
    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 B"), (512, "512.0 B"), (1536, "1.5 KB"), (5 * 1024**2, "5.0 MB")],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected

    def test_format_kb_and_mb(self):
        assert format_kb(12800) == "12.50"
        assert format_mb(5 * 1024 * 1024) == "5.00"

    @pytest.mark.parametrize(
        "seconds, expected", [(0, "0s"), (59.9, "59s"), (192, "3m 12s"), (3600, "1h")]
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


@pytest.mark.unit
class TestPaths:
    def test_sanitize_drops_directories(self):
        assert sanitize_name("..\\..\\evil.txt") == "evil.txt"
        assert sanitize_name("a/b/c.png") == "c.png"

    def test_unique_path(self, tmp_path: Path):
        target = tmp_path / "out.mp3"
        assert unique_path(target) == target
        target.touch()
        (tmp_path / "out (1).mp3").touch()
        assert unique_path(target) == tmp_path / "out (2).mp3"


@pytest.mark.unit
class TestRendering:
    def test_idle_renders_nothing(self):
        assert render_view_state(IdleView()) is None

    def test_error_text_is_not_interpreted_as_markup(self):
        output = render(render_view_state(ErrorView("Error: [bold]bad key[/bold]")))
        assert "Error: [bold]bad key[/bold]" in output

    def test_embed_view(self):
        view = EmbedView("Done", "blob:mp3stego/1", "[red]song.mp3", 2048)
        output = render(render_view_state(view))
        assert "[red]song.mp3" in output
        assert "2.0 KB" in output

    def test_extract_text_preview_and_metadata(self):
        view = ExtractView(
            message="Extracted",
            url="blob:mp3stego/2",
            content_type="text/plain",
            size_bytes=5,
            text_preview="hello",
            metadata=ExtractMetadata("note.txt", "text/plain", 5, True, False, 2),
        )
        output = render(render_view_state(view))
        assert "hello" in output
        assert "note.txt" in output
        assert "✓ Used" in output
        assert "✗ Not used" in output

    def test_extract_binary_summary(self):
        view = ExtractView("Extracted", "blob:mp3stego/3", "image/png", 2048)
        output = render(render_view_state(view))
        assert "Binary file detected" in output
        assert "2.00 KB" in output

    def test_psnr_view(self):
        view = PsnrView(35.0, 0.5, 32767, 1000, 1000, "good", 70.0)
        output = render(render_view_state(view))
        assert "35.00 dB (good)" in output

    def test_capacity_hidden_when_unknown(self):
        assert render_capacity(None) is None
        panel = render_capacity(
            CapacityReport(capacity_bytes=2048, capacity_readable="2.00 KB", method="lsb")
        )
        assert "2.00 KB" in render(panel)

    def test_error_panel_has_suggestions(self):
        output = render(format_error_with_suggestions(TransportFailure("Embedding failed")))
        assert "TransportFailure: Embedding failed" in output
        assert "mp3stego health" in output
