"""Stream session lifecycle.

A :class:`StreamSession` wires one engine to the selector, flow controller,
diagnostics monitor and HTTP gateway, in this order:

1. the blocklist is parsed and handed to the engine, configured peers are added
2. flow control and diagnostics subscribe to the engine's events
3. once the engine is ready the primary file is resolved and the gateway binds
4. the configured shell hooks run when serving starts and once the download completes
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import TYPE_CHECKING

from peerstream.config.config import get_config
from peerstream.events import EngineEventType, Event
from peerstream.gateway.server import StreamGateway, guess_content_type
from peerstream.gateway.status import collect_swarm_stats
from peerstream.security.blocklist import parse_blocklist
from peerstream.session.diagnostics import DiagnosticsMonitor
from peerstream.session.flow_control import FlowController
from peerstream.session.selector import FileSelector, FilePredicate, include_all
from peerstream.utils.logging_config import LoggingContext
from peerstream.utils.tasks import TaskTracker

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine, SwarmFile
    from peerstream.gateway.server import ContentTypeResolver
    from peerstream.models import BlocklistRange, Config, SwarmStats

logger = logging.getLogger(__name__)


class StreamSession:
    """Serves one engine's files until stopped."""

    def __init__(
        self,
        engine: SwarmEngine,
        config: Config | None = None,
        predicate: FilePredicate = include_all,
        content_type: ContentTypeResolver = guess_content_type,
        list_only: bool = False,
    ):
        """Initialize session.

        Args:
            engine: Engine to serve
            config: Configuration (default: the global configuration)
            predicate: Which files appear in listings and playlists
            content_type: Maps a file name to its ``Content-Type``
            list_only: Only wait for the file list, resolve and bind nothing

        """
        self.engine = engine
        self.config = config or get_config()
        self.predicate = predicate
        self.list_only = list_only

        self.selector = FileSelector(engine, sort=self.config.stream.sort)
        self.flow_controller = FlowController(engine)
        self.diagnostics = DiagnosticsMonitor(engine)
        self.gateway = StreamGateway(
            engine,
            self.selector,
            predicate=predicate,
            content_type=content_type,
            idle_timeout=self.config.server.idle_timeout,
        )

        self.blocklist: list[BlocklistRange] = []
        self.hooks = TaskTracker("stream session")
        self.downloaded = False
        self._ready = asyncio.Event()
        self._error: Exception | None = None
        self._started = False
        self._stopped = False

    async def __aenter__(self) -> StreamSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @property
    def url(self) -> str | None:
        return self.gateway.url

    @property
    def ready(self) -> bool:
        return self._ready.is_set() and self._error is None

    async def start(self) -> None:
        """Configure the engine and start it.

        Raises:
            BlocklistError: If the configured blocklist cannot be read

        """
        if self._started:
            return
        self._started = True
        stream = self.config.stream

        with LoggingContext("session_start"):
            if stream.blocklist:
                self.blocklist = parse_blocklist(stream.blocklist)
                self.engine.set_blocklist(self.blocklist)
                logger.info("Blocking %d IP range(s)", len(self.blocklist))

            for peer in stream.peers:
                self.engine.connect(peer)

            self.flow_controller.attach()
            self.diagnostics.attach()
            self.engine.events.subscribe(EngineEventType.READY, self._on_ready)
            if stream.on_downloaded and not self.list_only:
                self.engine.events.subscribe(EngineEventType.VERIFY, self._on_progress)
                self.engine.events.subscribe(EngineEventType.UNINTERESTED, self._on_progress)

            if self.engine.ready:
                await self._on_ready()
            else:
                await self.engine.start()

    async def _on_ready(self, _event: Event | None = None) -> None:
        if self._ready.is_set():
            return
        try:
            await self._serve()
        except Exception as e:
            self._error = e
            raise
        finally:
            self._ready.set()

    async def _serve(self) -> None:
        if self.list_only:
            logger.debug("File list available (%d files)", len(self.engine.files))
            return

        stream = self.config.stream
        if stream.select_all:
            self.selector.select_all()
        self.selector.resolve(stream.index)

        server = self.config.server
        await self.gateway.start(server.host, server.port)
        if stream.on_listening:
            self.hooks.spawn(self._run_hook(f"{stream.on_listening} {shlex.quote(self.url)}"))

    def _on_progress(self, event: Event) -> None:
        """Run the download hook once, when everything selected is present."""
        if self.downloaded:
            return
        if (
            event.event_type is EngineEventType.VERIFY
            and self.diagnostics.downloaded_percentage < 100
        ):
            return
        self.downloaded = True
        logger.info("Selected files downloaded")
        self.hooks.spawn(self._run_hook(self.config.stream.on_downloaded))

    async def _run_hook(self, command: str) -> int:
        logger.info("Running %s", command)
        process = await asyncio.create_subprocess_shell(command)
        returncode = await process.wait()
        if returncode != 0:
            logger.warning("Command %r exited with status %d", command, returncode)
        return returncode

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Wait until the file list is known and the gateway is serving.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first
            PeerStreamError: Whatever failed while resolving or binding

        """
        await asyncio.wait_for(self._ready.wait(), timeout)
        if self._error is not None:
            raise self._error

    def files(self) -> list[SwarmFile]:
        """Included files in display order."""
        return self.selector.listing(self.predicate)

    def stats(self) -> SwarmStats:
        return collect_swarm_stats(self.engine.swarm)

    async def stop(self) -> None:
        """Stop serving and shut the engine down."""
        if self._stopped:
            return
        self._stopped = True

        with LoggingContext("session_stop"):
            await self.gateway.stop()
            self.engine.events.unsubscribe(EngineEventType.READY, self._on_ready)
            self.engine.events.unsubscribe(EngineEventType.VERIFY, self._on_progress)
            self.engine.events.unsubscribe(EngineEventType.UNINTERESTED, self._on_progress)
            self.flow_controller.detach()
            self.diagnostics.detach()
            await self.engine.destroy(remove=self.config.stream.remove_on_exit)
            await self.hooks.shutdown(grace=1.0)
