"""
Tests for the session coordinator (core/session.py) with a mocked API client.
"""

import asyncio
from dataclasses import replace
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from mp3stego_client.api.client import StegoAPIClient
from mp3stego_client.core.presenter import (
    EmbedView,
    ErrorView,
    ExtractView,
    IdleView,
    NoticeView,
    PsnrView,
)
from mp3stego_client.core.resources import SlotKind
from mp3stego_client.core.save import SaveService
from mp3stego_client.core.session import (
    CONNECTED_MESSAGE,
    PROGRESS_MESSAGES,
    SAVED_MESSAGE,
    StegoSession,
    View,
)
from mp3stego_client.exceptions import NoResultError, TransportFailure
from mp3stego_client.models.requests import (
    EmbedDraft,
    ExtractDraft,
    Method,
    OperationKind,
    PsnrDraft,
    SelectedFile,
)
from mp3stego_client.models.results import (
    Blob,
    CapacityReport,
    EmbedResult,
    ExtractMetadata,
    ExtractResult,
    HealthStatus,
    PsnrResult,
)

FIVE_MB = 5 * 1024 * 1024


def selected(name: str, size: int, media_type: str) -> SelectedFile:
    return SelectedFile(name=name, path=Path(name), size=size, media_type=media_type)


@pytest.fixture
def api() -> AsyncMock:
    return AsyncMock(spec=StegoAPIClient)


@pytest.fixture
def session(api, tmp_path) -> StegoSession:
    return StegoSession(api, save_service=SaveService(tmp_path))


@pytest.fixture
def embed_draft() -> EmbedDraft:
    return EmbedDraft(
        mp3_files=(selected("song.mp3", FIVE_MB, "audio/mpeg"),),
        secret_files=(selected("secret.txt", 42, "text/plain"),),
        key="secret",
        method=Method.HEADER,
    )


def embed_result() -> EmbedResult:
    return EmbedResult(Blob(b"stego-audio", "audio/mpeg"), original_filename="song.mp3")


@pytest.mark.unit
class TestConnection:
    @pytest.mark.asyncio
    async def test_connected(self, session, api):
        api.check_health.return_value = HealthStatus(status="ok", time="now")
        status = await session.check_connection()
        assert status.connected
        assert status.message == CONNECTED_MESSAGE

    @pytest.mark.asyncio
    async def test_connection_failure(self, session, api):
        api.check_health.side_effect = TransportFailure("Health check failed")
        status = await session.check_connection()
        assert not status.connected
        assert status.message == "Connection failed: Health check failed"


@pytest.mark.unit
class TestEmbedScenario:
    @pytest.mark.asyncio
    async def test_success_activates_embed_result(self, session, api, embed_draft):
        api.embed.return_value = embed_result()

        view = await session.submit_embed(embed_draft)

        assert isinstance(view, EmbedView)
        assert session.resources.live_url_count() == 1
        request = api.embed.await_args.args[0]
        assert request.key == "secret"
        assert request.form_fields()["method"] == "header"
        assert "lsb_bits" not in request.form_fields()

    @pytest.mark.asyncio
    async def test_service_failure_shows_its_message(self, session, api, embed_draft):
        api.embed.side_effect = TransportFailure("bad key", status=400)

        view = await session.submit_embed(embed_draft)

        assert view == ErrorView("Error: bad key")
        assert session.resources.current(SlotKind.STEGO) is None
        assert session.resources.live_url_count() == 0

    @pytest.mark.asyncio
    async def test_validation_failure_never_calls_the_service(
        self, session, api, embed_draft
    ):
        view = await session.submit_embed(replace(embed_draft, key=""))

        assert view == ErrorView("Error: Key cannot be empty")
        api.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_progress_notice_is_shown_while_waiting(
        self, session, api, embed_draft
    ):
        seen = []

        async def slow_embed(request):
            seen.append(session.view_state)
            return embed_result()

        api.embed.side_effect = slow_embed
        await session.submit_embed(embed_draft)
        assert seen == [NoticeView(PROGRESS_MESSAGES[OperationKind.EMBED])]


@pytest.mark.unit
class TestInFlightGuard:
    @pytest.mark.asyncio
    async def test_second_submission_for_busy_slot_is_ignored(
        self, session, api, embed_draft
    ):
        release = asyncio.Event()

        async def blocked_embed(request):
            await release.wait()
            return embed_result()

        api.embed.side_effect = blocked_embed
        first = asyncio.create_task(session.submit_embed(embed_draft))
        await asyncio.sleep(0)
        assert session.is_busy(OperationKind.EMBED)

        second = await session.submit_embed(embed_draft)
        assert isinstance(second, NoticeView)
        assert api.embed.await_count == 1

        release.set()
        assert isinstance(await first, EmbedView)
        assert not session.is_busy(OperationKind.EMBED)

    @pytest.mark.asyncio
    async def test_different_slots_may_overlap(self, session, api, embed_draft):
        release = asyncio.Event()

        async def blocked_embed(request):
            await release.wait()
            return embed_result()

        api.embed.side_effect = blocked_embed
        api.psnr.return_value = PsnrResult(45.0, 0.1, 32767, 10, 10)
        embed_task = asyncio.create_task(session.submit_embed(embed_draft))
        await asyncio.sleep(0)

        psnr_draft = PsnrDraft(
            original_files=(selected("a.mp3", 10, "audio/mpeg"),),
            modified_files=(selected("b.mp3", 10, "audio/mpeg"),),
        )
        assert isinstance(await session.submit_psnr(psnr_draft), PsnrView)

        release.set()
        await embed_task
        api.psnr.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_slot_is_freed_after_failure(self, session, api, embed_draft):
        api.embed.side_effect = TransportFailure("Embedding failed")
        await session.submit_embed(embed_draft)
        assert not session.is_busy(OperationKind.EMBED)


@pytest.mark.unit
class TestExtract:
    @pytest.mark.asyncio
    async def test_header_extract_with_empty_key_is_submitted(self, session, api):
        api.extract.return_value = ExtractResult(
            Blob(b"hello", "text/plain"), "text/plain", ExtractMetadata("note.txt")
        )
        draft = ExtractDraft(
            mp3_files=(selected("stego.mp3", 1000, "audio/mpeg"),),
            key="",
            method=Method.HEADER,
        )

        view = await session.submit_extract(draft)

        assert isinstance(view, ExtractView)
        assert view.text_preview == "hello"
        api.extract.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_save_extracted_uses_original_name(self, session, api, tmp_path):
        api.extract.return_value = ExtractResult(
            Blob(b"hello", "text/plain"), "text/plain", ExtractMetadata("note.md")
        )
        draft = ExtractDraft(
            mp3_files=(selected("stego.mp3", 1000, "audio/mpeg"),),
            method=Method.HEADER,
        )
        await session.submit_extract(draft)

        path = await session.save_extracted()

        assert path == tmp_path / "note.txt"
        assert path.read_bytes() == b"hello"
        assert session.view_state == NoticeView(SAVED_MESSAGE)


@pytest.mark.unit
class TestSaving:
    @pytest.mark.asyncio
    async def test_save_stego(self, session, api, embed_draft, tmp_path):
        api.embed.return_value = embed_result()
        await session.submit_embed(embed_draft)

        path = await session.save_stego()

        assert path == tmp_path / "stego_song.mp3"
        assert path.read_bytes() == b"stego-audio"

    @pytest.mark.asyncio
    async def test_save_without_result(self, session):
        with pytest.raises(NoResultError):
            await session.save_stego()
        with pytest.raises(NoResultError):
            await session.save_extracted()


@pytest.mark.unit
class TestNavigation:
    @pytest.mark.asyncio
    async def test_switch_view_releases_results(self, session, api, embed_draft):
        api.embed.return_value = embed_result()
        await session.submit_embed(embed_draft)

        view = session.switch_view(View.EXTRACT)

        assert view == IdleView()
        assert session.view is View.EXTRACT
        assert session.resources.live_url_count() == 0

    @pytest.mark.asyncio
    async def test_start_new_operation(self, session, api, embed_draft):
        api.embed.return_value = embed_result()
        await session.submit_embed(embed_draft)
        assert session.start_new_operation() == IdleView()
        assert session.resources.live_url_count() == 0

    @pytest.mark.asyncio
    async def test_close_releases_and_closes_client(self, session, api, embed_draft):
        api.embed.return_value = embed_result()
        await session.submit_embed(embed_draft)
        await session.close()
        assert session.resources.live_url_count() == 0
        api.close.assert_awaited_once()


@pytest.mark.unit
class TestSelections:
    @pytest.mark.asyncio
    async def test_mp3_selection_queries_capacity(self, session, api, mp3_path):
        api.capacity.return_value = CapacityReport(
            capacity_bytes=100, capacity_readable="100 B", method="header"
        )
        files = (SelectedFile.from_path(mp3_path),)

        info = await session.mp3_selected(files, Method.HEADER)

        assert info.name == "song.mp3"
        assert session.capacity.capacity_bytes == 100
        check = session.secret_selected((selected("big.bin", 500, ""),))
        assert check.warning

    @pytest.mark.asyncio
    async def test_method_change_requeries(self, session, api, mp3_file):
        api.capacity.return_value = CapacityReport(capacity_bytes=10)
        await session.method_changed((mp3_file,), Method.LSB, 2)
        request = api.capacity.await_args.args[0]
        assert request.method is Method.LSB
        assert request.lsb_bits == 2

    def test_key_filter(self, session):
        assert session.key_input_changed("ké€y").value == "kéy"


@pytest.mark.integration
class TestUnreadableFiles:
    @pytest.fixture
    def live_session(self, api_client, tmp_path) -> StegoSession:
        return StegoSession(api_client, save_service=SaveService(tmp_path / "out"))

    @pytest.mark.asyncio
    async def test_vanished_carrier_on_method_change(self, live_session, mp3_file):
        mp3_file.path.unlink()

        report = await live_session.method_changed((mp3_file,), Method.HEADER)

        assert report is None
        assert live_session.capacity.capacity_bytes is None

    @pytest.mark.asyncio
    async def test_vanished_carrier_on_submit(
        self, live_session, fake_service, mp3_file, secret_file
    ):
        draft = EmbedDraft(
            mp3_files=(mp3_file,), secret_files=(secret_file,), key="secret"
        )
        mp3_file.path.unlink()

        view = await live_session.submit_embed(draft)

        assert view == ErrorView("Error: Could not read 'song.mp3'")
        assert live_session.view_state == view
        assert not live_session.is_busy(OperationKind.EMBED)
        assert "embed" not in fake_service.received
