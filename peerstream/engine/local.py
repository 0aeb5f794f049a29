"""Engine adapter for content that is already on disk.

:class:`DirectoryEngine` exposes a single file or a directory tree through the
:mod:`peerstream.engine.protocol` contract. It has no peers, so every byte is
available immediately; demand events follow file selection only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Sequence

import aiofiles

from peerstream.events import EngineEventType, EventBus
from peerstream.security.blocklist import BlocklistFilter
from peerstream.utils.exceptions import EngineError, StreamReadError
from peerstream.utils.tasks import TaskTracker

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.models import BlocklistRange

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class RateMeter:
    """Bytes/sec over a sliding window."""

    def __init__(self, window: float = 5.0):
        self.window = window
        self._samples: deque[tuple[float, int]] = deque()

    def add(self, nbytes: int) -> None:
        now = time.monotonic()
        self._samples.append((now, nbytes))
        self._expire(now)

    def _expire(self, now: float) -> None:
        while self._samples and now - self._samples[0][0] > self.window:
            self._samples.popleft()

    def rate(self) -> float:
        self._expire(time.monotonic())
        return sum(n for _, n in self._samples) / self.window


class LocalSwarm:
    """Swarm statistics for an engine without peers."""

    def __init__(self) -> None:
        self.downloaded = 0
        self.uploaded = 0
        self.wires: list = []
        self.queued = 0
        self.paused = False
        self._upload_rate = RateMeter()

    def download_speed(self) -> float:
        return 0.0

    def upload_speed(self) -> float:
        return self._upload_rate.rate()

    def record_upload(self, nbytes: int) -> None:
        self.uploaded += nbytes
        self._upload_rate.add(nbytes)

    def pause(self) -> None:
        self.paused = True
        logger.debug("Swarm paused")

    def resume(self) -> None:
        self.paused = False
        logger.debug("Swarm resumed")


class LocalFile:
    """A regular file served by :class:`DirectoryEngine`."""

    def __init__(
        self,
        engine: DirectoryEngine,
        index: int,
        source: Path,
        path: str,
        length: int,
    ):
        self._engine = engine
        self.index = index
        self.source = source
        self.path = path
        self.name = source.name
        self.length = length
        self.selected = False

    def __repr__(self) -> str:
        return f"LocalFile(index={self.index}, path={self.path!r}, length={self.length})"

    def select(self) -> None:
        self.selected = True
        self._engine._update_interest()  # noqa: SLF001

    def deselect(self) -> None:
        self.selected = False
        self._engine._update_interest()  # noqa: SLF001

    async def create_read_stream(
        self, start: int = 0, end: int | None = None
    ) -> AsyncIterator[bytes]:
        """Yield the file bytes from ``start`` to ``end`` inclusive."""
        if end is None:
            end = self.length - 1
        remaining = end - start + 1
        chunk_size = self._engine.chunk_size

        async with aiofiles.open(self.source, "rb") as f:
            await f.seek(start)
            while remaining > 0:
                chunk = await f.read(min(chunk_size, remaining))
                if not chunk:
                    msg = f"Unexpected end of {self.path} at offset {end - remaining + 1}"
                    raise StreamReadError(msg, details={"path": self.path})
                remaining -= len(chunk)
                self._engine.swarm.record_upload(len(chunk))
                yield chunk


class DirectoryEngine:
    """Serves a file or directory tree through the swarm engine contract."""

    def __init__(self, root: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """Initialize engine.

        Args:
            root: File or directory to expose
            chunk_size: Largest chunk yielded by read streams

        """
        self.root = Path(root).expanduser()
        self.chunk_size = chunk_size
        self.events = EventBus()
        self.swarm = LocalSwarm()
        self.files: Sequence[LocalFile] = ()
        self.ready = False
        self.peers: list[str] = []
        self.blocklist = BlocklistFilter()
        self._interested = False
        self._tasks = TaskTracker("directory engine")

    def _scan(self) -> list[LocalFile]:
        if self.root.is_file():
            sources = [(self.root, self.root.name)]
        elif self.root.is_dir():
            sources = [
                (p, f"{self.root.name}/{p.relative_to(self.root).as_posix()}")
                for p in sorted(self.root.rglob("*"))
                if p.is_file()
            ]
        else:
            msg = f"No such file or directory: {self.root}"
            raise EngineError(msg, details={"root": str(self.root)})

        return [
            LocalFile(self, i, source, path, source.stat().st_size)
            for i, (source, path) in enumerate(sources)
        ]

    async def start(self) -> None:
        """Enumerate and check the files, then emit ``ready``."""
        files = await asyncio.to_thread(self._scan)
        if not files:
            msg = f"No files found under {self.root}"
            raise EngineError(msg, details={"root": str(self.root)})

        await self.events.emit(
            EngineEventType.VERIFYING, source="local", piece_count=len(files)
        )
        for f in files:
            if not f.source.exists():
                await self.events.emit(
                    EngineEventType.INVALID_PIECE, source="local", index=f.index
                )
                continue
            self.swarm.downloaded += f.length
            await self.events.emit(EngineEventType.VERIFY, source="local", index=f.index)

        self.files = tuple(files)
        self.ready = True
        logger.info("Serving %d file(s) from %s", len(files), self.root)
        await self.events.emit(EngineEventType.READY, source="local")

    def _update_interest(self) -> None:
        interested = any(f.selected for f in self.files)
        if interested == self._interested:
            return
        self._interested = interested
        event = EngineEventType.INTERESTED if interested else EngineEventType.UNINTERESTED
        self._tasks.spawn(self.events.emit(event, source="local"))

    async def settle(self) -> None:
        """Wait until queued demand events have been dispatched."""
        await self._tasks.drain()

    def set_blocklist(self, ranges: Sequence[BlocklistRange]) -> None:
        self.blocklist.load(ranges)

    def connect(self, address: str) -> None:
        host, _, port = address.rpartition(":")
        host = host.strip("[]")
        if not host or not port.isdigit():
            msg = f"Invalid peer address {address!r}"
            raise EngineError(msg)
        if self.blocklist.is_blocked(host):
            logger.info("Refusing blocklisted peer %s", address)
            return
        self.peers.append(address)
        logger.debug("Added peer %s", address)

    async def destroy(self, remove: bool = False) -> None:
        if remove:
            logger.warning("Not removing source content under %s", self.root)
        await self._tasks.shutdown(grace=1.0)
        self.ready = False
