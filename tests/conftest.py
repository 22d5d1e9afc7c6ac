"""
Pytest fixtures shared by the test suite.

Service interactions run against an in-process aiohttp application that
mimics the steganography service's endpoints.
"""

import asyncio
import json
import threading
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mp3stego_client.api.client import StegoAPIClient
from mp3stego_client.models.requests import SelectedFile

# A few bytes that look like the start of an MP3 frame; enough for upload tests.
FAKE_MP3_BYTES = b"\xff\xfb\x90\x64" + b"\x00" * 2048
SECRET_TEXT = "attack at dawn\n"


@pytest.fixture
def mp3_path(tmp_path: Path) -> Path:
    path = tmp_path / "song.mp3"
    path.write_bytes(FAKE_MP3_BYTES)
    return path


@pytest.fixture
def modified_mp3_path(tmp_path: Path) -> Path:
    path = tmp_path / "stego_song.mp3"
    path.write_bytes(FAKE_MP3_BYTES[:-1] + b"\x01")
    return path


@pytest.fixture
def secret_path(tmp_path: Path) -> Path:
    path = tmp_path / "secret.txt"
    path.write_text(SECRET_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def mp3_file(mp3_path: Path) -> SelectedFile:
    return SelectedFile.from_path(mp3_path)


@pytest.fixture
def secret_file(secret_path: Path) -> SelectedFile:
    return SelectedFile.from_path(secret_path)


def _json_error(message: str, status: int = 400) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status)


class FakeStegoService:
    """Records received form fields and answers like the real service."""

    def __init__(self):
        self.received: dict[str, dict] = {}
        self.capacity_bytes = 4096
        self.embed_error: str | None = None
        self.extract_headers = {
            "X-Original-Filename": "secret.txt",
            "X-File-Type": "text/plain",
            "X-Secret-Size": str(len(SECRET_TEXT)),
            "X-Used-Encryption": "false",
            "X-Used-Key-Position": "true",
            "X-LSB-Bits": "2",
        }

    async def _read_form(self, request: web.Request, name: str) -> dict:
        fields = {}
        async for part in await request.multipart():
            data = await part.read()
            if part.filename:
                fields[part.name] = {"filename": part.filename, "size": len(data)}
            else:
                fields[part.name] = data
        self.received[name] = fields
        return fields

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "time": "2024-01-01T00:00:00Z"})

    async def embed(self, request: web.Request) -> web.Response:
        await self._read_form(request, "embed")
        if self.embed_error:
            return _json_error(self.embed_error)
        return web.Response(body=b"stego-audio-bytes", content_type="audio/mpeg")

    async def extract(self, request: web.Request) -> web.Response:
        await self._read_form(request, "extract")
        return web.Response(
            body=SECRET_TEXT.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8", **self.extract_headers},
        )

    async def capacity(self, request: web.Request) -> web.Response:
        fields = await self._read_form(request, "capacity")
        return web.json_response(
            {
                "success": True,
                "message": "Capacity calculated",
                "capacity_bytes": self.capacity_bytes,
                "capacity_readable": f"{self.capacity_bytes / 1024:.2f} KB",
                "frame_count": 38,
                "method": fields.get("method", b"header").decode(),
            }
        )

    async def psnr(self, request: web.Request) -> web.Response:
        await self._read_form(request, "psnr")
        return web.json_response(
            {
                "psnr": 42.5,
                "mse": 0.0125,
                "max_signal": 32767,
                "original_size": 2052,
                "modified_size": 2052,
            }
        )

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/health", self.health)
        app.router.add_post("/api/embed", self.embed)
        app.router.add_post("/api/extract", self.extract)
        app.router.add_post("/api/capacity", self.capacity)
        app.router.add_post("/api/psnr", self.psnr)
        app.router.add_post("/api/broken", self.broken)
        app.router.add_post("/api/plain-error", self.plain_error)
        return app

    async def broken(self, request: web.Request) -> web.Response:
        return web.Response(text="not json", content_type="application/json")

    async def plain_error(self, request: web.Request) -> web.Response:
        return web.Response(text="<html>Bad Gateway</html>", status=502)


@pytest.fixture
def fake_service() -> FakeStegoService:
    return FakeStegoService()


@pytest_asyncio.fixture
async def service_url(fake_service: FakeStegoService):
    server = TestServer(fake_service.app())
    await server.start_server()
    try:
        yield str(server.make_url("/api"))
    finally:
        await server.close()


@pytest.fixture
def threaded_service_url(fake_service: FakeStegoService):
    """Serves the fake service from a background loop, for code that runs its own loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()

    async def start() -> web.AppRunner:
        runner = web.AppRunner(fake_service.app())
        await runner.setup()
        await web.TCPSite(runner, "127.0.0.1", 0).start()
        return runner

    runner = asyncio.run_coroutine_threadsafe(start(), loop).result(timeout=10)
    host, port = runner.addresses[0][:2]
    try:
        yield f"http://{host}:{port}/api"
    finally:
        asyncio.run_coroutine_threadsafe(runner.cleanup(), loop).result(timeout=10)
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=10)
        loop.close()


@pytest_asyncio.fixture
async def api_client(service_url: str):
    client = StegoAPIClient(service_url, connect_timeout=5.0)
    try:
        yield client
    finally:
        await client.close()


def read_json_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
