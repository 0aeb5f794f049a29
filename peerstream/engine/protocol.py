"""Contract between peerstream and a swarm engine.

peerstream never speaks the peer wire protocol itself. Anything that exposes
the attributes below can back a stream session: a torrent engine, or the
:class:`~peerstream.engine.local.DirectoryEngine` for content already on disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.events import EventBus
    from peerstream.models import BlocklistRange


@runtime_checkable
class SwarmFile(Protocol):
    """A file inside the torrent, index-stable for the whole session."""

    index: int
    name: str
    path: str
    length: int
    selected: bool

    def select(self) -> None:
        """Ask the engine to fetch this file."""

    def deselect(self) -> None:
        """Stop fetching this file."""

    def create_read_stream(
        self, start: int = 0, end: int | None = None
    ) -> AsyncIterator[bytes]:
        """Stream bytes ``start..end`` (inclusive) as they become available.

        The returned iterator must support ``aclose()`` so a consumer can
        release it early.
        """


class Wire(Protocol):
    """A connected peer."""

    peer_choking: bool


class Swarm(Protocol):
    """Transfer statistics and flow control for the peer set."""

    downloaded: int
    uploaded: int
    wires: Sequence[Wire]
    queued: int
    paused: bool

    def download_speed(self) -> float:
        """Current download rate in bytes/sec."""

    def upload_speed(self) -> float:
        """Current upload rate in bytes/sec."""

    def pause(self) -> None:
        """Stop requesting pieces from peers."""

    def resume(self) -> None:
        """Resume requesting pieces from peers."""


class SwarmEngine(Protocol):
    """The engine collaborator passed to every peerstream component."""

    files: Sequence[SwarmFile]
    swarm: Swarm
    events: EventBus
    ready: bool

    async def start(self) -> None:
        """Begin resolving metadata; emits ``ready`` when files are known."""

    def set_blocklist(self, ranges: Sequence[BlocklistRange]) -> None:
        """Configure peer admission."""

    def connect(self, address: str) -> None:
        """Add a peer by ``ip:port``."""

    async def destroy(self, remove: bool = False) -> None:
        """Shut the engine down, optionally deleting downloaded data."""
