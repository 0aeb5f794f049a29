"""Tests for gateway internals and lifecycle."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from peerstream.gateway.server import StreamGateway, guess_content_type
from peerstream.gateway.status import build_playlist
from peerstream.session.selector import FileSelector
from peerstream.utils.exceptions import GatewayError

pytestmark = pytest.mark.unit


@pytest.fixture
def gateway(engine):
    selector = FileSelector(engine)
    selector.resolve()
    return StreamGateway(engine, selector)


def _request():
    request = MagicMock()
    request.remote = "127.0.0.1"
    request.path = "/1"
    return request


@pytest.mark.asyncio
async def test_pump_pulls_one_chunk_per_write(gateway):
    log = []

    async def source():
        for i in range(3):
            log.append(f"pull {i}")
            yield bytes([i])

    async def write(chunk):
        log.append(f"write {chunk[0]}")

    response = MagicMock()
    response.write = AsyncMock(side_effect=write)

    completed = await gateway._pump(source(), _request(), response)

    assert completed is True
    assert log == ["pull 0", "write 0", "pull 1", "write 1", "pull 2", "write 2"]


@pytest.mark.asyncio
async def test_pump_stops_on_client_disconnect(gateway, engine):
    f = engine.files[1]
    response = MagicMock()
    response.write = AsyncMock(side_effect=[None, ConnectionResetError("gone")])

    completed = await gateway._pump(f.create_read_stream(), _request(), response)

    assert completed is False
    assert response.write.await_count == 2
    assert f.closed_streams == 1


@pytest.mark.asyncio
async def test_pump_aborts_connection_on_engine_error(gateway, make_engine):
    engine = make_engine(("broken.bin", 50), fail_at=20)
    f = engine.files[0]
    request = _request()
    response = MagicMock()
    response.write = AsyncMock()

    completed = await gateway._pump(f.create_read_stream(), request, response)

    assert completed is False
    request.transport.close.assert_called_once()
    assert f.closed_streams == 1


@pytest.mark.asyncio
async def test_pump_aborts_connection_on_unexpected_error(gateway):
    closed = []

    async def source():
        try:
            yield b"first"
            raise RuntimeError("engine bug")
        finally:
            closed.append(True)

    request = _request()
    response = MagicMock()
    response.write = AsyncMock()

    completed = await gateway._pump(source(), request, response)

    assert completed is False
    response.write.assert_awaited_once_with(b"first")
    request.transport.close.assert_called_once()
    assert closed == [True]


def test_normalize_path(gateway, engine):
    assert gateway.normalize_path("/") == "/1"
    assert gateway.normalize_path("/show/extras/trailer.mkv") == "/2"
    assert gateway.normalize_path("/.json") == "/.json"
    assert gateway.normalize_path("/7") == "/7"


def test_file_for_path(gateway, engine):
    assert gateway.file_for_path("/2") is engine.files[2]
    assert gateway.file_for_path("/3") is None
    assert gateway.file_for_path("/x1") is None
    assert gateway.file_for_path("/1/") is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("movie.mp4", "video/mp4"),
        ("notes.txt", "text/plain"),
        ("blob.unknownext", "application/octet-stream"),
    ],
)
def test_guess_content_type(name, expected):
    assert guess_content_type(name) == expected


def test_playlist_without_files():
    assert build_playlist([], "localhost:8888") == "#EXTM3U"


@pytest.mark.asyncio
async def test_start_and_stop(gateway, engine):
    await gateway.start("127.0.0.1", 0)
    try:
        assert gateway.port
        assert gateway.url == f"http://127.0.0.1:{gateway.port}/"
        async with aiohttp.ClientSession() as session, session.get(
            f"{gateway.url}0"
        ) as resp:
            assert resp.status == 200
            assert await resp.read() == engine.files[0].data
    finally:
        await gateway.stop()

    assert gateway.port is None
    assert gateway.url is None


@pytest.mark.asyncio
async def test_start_on_busy_port(gateway, engine):
    await gateway.start("127.0.0.1", 0)
    other = StreamGateway(engine, gateway.selector)
    try:
        with pytest.raises(GatewayError):
            await other.start("127.0.0.1", gateway.port)
        assert other.port is None
    finally:
        await gateway.stop()


@pytest.mark.asyncio
async def test_idle_timeout_defaults_to_ten_hours(gateway):
    await gateway.start("127.0.0.1", 0)
    try:
        assert gateway.runner.server._kwargs["keepalive_timeout"] == 36000
    finally:
        await gateway.stop()


@pytest.mark.asyncio
async def test_custom_idle_timeout_reaches_server(engine):
    selector = FileSelector(engine)
    selector.resolve()
    gateway = StreamGateway(engine, selector, idle_timeout=12.5)

    await gateway.start("127.0.0.1", 0)
    try:
        assert gateway.runner.server._kwargs["keepalive_timeout"] == 12.5
    finally:
        await gateway.stop()
