"""Pytest configuration and shared fixtures for peerstream tests."""

from __future__ import annotations

import asyncio
import logging
import os

import pytest

from peerstream.events import EngineEventType, EventBus
from peerstream.utils.exceptions import StreamReadError


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("integration", "marks tests as integration tests"),
        ("property", "marks tests as property-based tests"),
        ("cli", "marks tests as CLI tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch, tmp_path):
    """Keep user config files and PEERSTREAM_* variables out of tests."""
    for name in list(os.environ):
        if name.startswith("PEERSTREAM_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # setup_logging stops propagation, which hides records from caplog
    package_logger = logging.getLogger("peerstream")
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def content_for(seed: int, length: int) -> bytes:
    """Deterministic file content, different per seed."""
    return bytes((seed * 31 + i) % 251 for i in range(length))


class FakeWire:
    def __init__(self, peer_choking: bool = False):
        self.peer_choking = peer_choking


class FakeSwarm:
    """Swarm double recording pause/resume calls."""

    def __init__(self):
        self.downloaded = 0
        self.uploaded = 0
        self.wires: list[FakeWire] = []
        self.queued = 0
        self.paused = False
        self.down_rate = 0.0
        self.up_rate = 0.0
        self.calls: list[str] = []

    def download_speed(self) -> float:
        return self.down_rate

    def upload_speed(self) -> float:
        return self.up_rate

    def pause(self) -> None:
        self.paused = True
        self.calls.append("pause")

    def resume(self) -> None:
        self.paused = False
        self.calls.append("resume")


class FakeFile:
    """In-memory swarm file yielding small chunks."""

    def __init__(
        self,
        index: int,
        path: str,
        data: bytes,
        chunk_size: int = 7,
        fail_at: int | None = None,
    ):
        self.index = index
        self.path = path
        self.name = path.rsplit("/", 1)[-1]
        self.data = data
        self.length = len(data)
        self.selected = False
        self.chunk_size = chunk_size
        self.fail_at = fail_at
        self.reads: list[tuple[int, int]] = []
        self.closed_streams = 0

    def select(self) -> None:
        self.selected = True

    def deselect(self) -> None:
        self.selected = False

    async def create_read_stream(self, start: int = 0, end: int | None = None):
        if end is None:
            end = self.length - 1
        self.reads.append((start, end))
        pos = start
        try:
            while pos <= end:
                if self.fail_at is not None and pos >= self.fail_at:
                    msg = f"piece missing at {pos}"
                    raise StreamReadError(msg)
                chunk = self.data[pos : min(pos + self.chunk_size, end + 1)]
                pos += len(chunk)
                await asyncio.sleep(0)
                yield chunk
        finally:
            self.closed_streams += 1


class FakeEngine:
    """Engine double implementing the swarm engine contract."""

    def __init__(self, files: list[FakeFile], ready: bool = True):
        self.files = files
        self.swarm = FakeSwarm()
        self.events = EventBus()
        self.ready = ready
        self.started = False
        self.blocklist = None
        self.peers: list[str] = []
        self.destroyed: bool | None = None

    async def start(self) -> None:
        self.started = True
        self.ready = True
        await self.events.emit(EngineEventType.READY, source="fake")

    def set_blocklist(self, ranges) -> None:
        self.blocklist = list(ranges)

    def connect(self, address: str) -> None:
        self.peers.append(address)

    async def destroy(self, remove: bool = False) -> None:
        self.destroyed = remove
        self.ready = False


@pytest.fixture
def make_engine():
    """Build a FakeEngine from ``(path, length)`` pairs."""

    def _make(*specs: tuple[str, int], ready: bool = True, **file_kwargs) -> FakeEngine:
        files = [
            FakeFile(i, path, content_for(i, length), **file_kwargs)
            for i, (path, length) in enumerate(specs)
        ]
        return FakeEngine(files, ready=ready)

    return _make


@pytest.fixture
def engine(make_engine):
    """Three-file torrent whose largest file is the second one."""
    return make_engine(
        ("show/readme.txt", 40),
        ("show/episode 1.mp4", 300),
        ("show/extras/trailer.mkv", 120),
    )
