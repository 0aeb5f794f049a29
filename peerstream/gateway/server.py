"""HTTP gateway serving swarm files as seekable streams.

Every request goes through the same short sequence: CORS preflight, origin
reflection, path normalization, reserved endpoints (``/favicon.ico``,
``/.json``, ``/.m3u``) and finally the file stream for ``/<index>``.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import mimetypes
import re
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

from aiohttp import hdrs, web

from peerstream.gateway.ranges import parse_range
from peerstream.gateway.status import build_playlist, build_status_snapshot
from peerstream.session.selector import FilePredicate, include_all
from peerstream.utils.exceptions import EngineError, GatewayError

if TYPE_CHECKING:  # pragma: no cover
    from aiohttp.web_request import Request
    from aiohttp.web_response import Response, StreamResponse

    from peerstream.engine.protocol import SwarmEngine, SwarmFile
    from peerstream.session.selector import FileSelector

logger = logging.getLogger(__name__)

PREFLIGHT_METHODS = "POST, GET, OPTIONS"
PREFLIGHT_MAX_AGE = "1728000"
DLNA_TRANSFER_MODE = "Streaming"
DLNA_CONTENT_FEATURES = (
    "DLNA.ORG_OP=01;DLNA.ORG_CI=0;DLNA.ORG_FLAGS=01700000000000000000000000000000"
)
PLAYLIST_CONTENT_TYPE = "application/x-mpegurl"
IDLE_TIMEOUT = 36000.0

_INDEX_PATH = re.compile(r"/([0-9]+)")

ContentTypeResolver = Callable[[str], str]

# Request storage key for a file response whose headers went out
STREAM_RESPONSE_KEY = "peerstream.stream_response"


def _abort(request: Request) -> None:
    if request.transport is not None:
        request.transport.close()


def guess_content_type(name: str) -> str:
    """Media type for a file name, by extension."""
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"


class StreamGateway:
    """aiohttp application exposing engine files over HTTP."""

    def __init__(
        self,
        engine: SwarmEngine,
        selector: FileSelector,
        predicate: FilePredicate = include_all,
        content_type: ContentTypeResolver = guess_content_type,
        idle_timeout: float = IDLE_TIMEOUT,
    ):
        """Initialize gateway.

        Args:
            engine: Engine providing files, streams and statistics
            selector: Owner of the primary file served at ``/``
            predicate: Which files appear in ``/.json`` and ``/.m3u``
            content_type: Maps a file name to its ``Content-Type``
            idle_timeout: Seconds an idle connection is kept open

        """
        self.engine = engine
        self.selector = selector
        self.predicate = predicate
        self.content_type = content_type
        self.idle_timeout = idle_timeout
        self.host: str | None = None

        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._port: int | None = None

        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self) -> None:
        """Set up CORS handling and error handling."""

        @web.middleware
        async def preflight_middleware(request: Request, handler: Any) -> StreamResponse:
            """Answer CORS preflight requests before routing."""
            requested = request.headers.get(hdrs.ACCESS_CONTROL_REQUEST_HEADERS)
            if request.method != hdrs.METH_OPTIONS or requested is None:
                return await handler(request)

            response = web.Response()
            origin = request.headers.get(hdrs.ORIGIN)
            if origin is not None:
                response.headers[hdrs.ACCESS_CONTROL_ALLOW_ORIGIN] = origin
            response.headers[hdrs.ACCESS_CONTROL_ALLOW_METHODS] = PREFLIGHT_METHODS
            response.headers[hdrs.ACCESS_CONTROL_ALLOW_HEADERS] = requested
            response.headers[hdrs.ACCESS_CONTROL_MAX_AGE] = PREFLIGHT_MAX_AGE
            return response

        self.app.middlewares.append(preflight_middleware)

        @web.middleware
        async def error_middleware(request: Request, handler: Any) -> StreamResponse:
            """Error handling middleware."""
            try:
                return await handler(request)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Error handling request %s %s from %s",
                    request.method,
                    request.path,
                    request.remote,
                )
                streamed = request.get(STREAM_RESPONSE_KEY)
                if streamed is None:
                    return web.Response(status=500)
                # Headers are already sent, only the connection can be ended
                _abort(request)
                return streamed

        self.app.middlewares.append(error_middleware)

        # Response headers must be in place before a streamed body starts
        self.app.on_response_prepare.append(self._reflect_origin)

    @staticmethod
    async def _reflect_origin(request: Request, response: StreamResponse) -> None:
        origin = request.headers.get(hdrs.ORIGIN)
        if origin is not None and hdrs.ACCESS_CONTROL_ALLOW_ORIGIN not in response.headers:
            response.headers[hdrs.ACCESS_CONTROL_ALLOW_ORIGIN] = origin

    def _setup_routes(self) -> None:
        self.app.router.add_route("*", "/{tail:.*}", self._handle_request)

    async def start(self, host: str | None = None, port: int = 0) -> None:
        """Bind and start serving.

        Args:
            host: Interface to bind (None binds all)
            port: TCP port, 0 picks a free one

        Raises:
            GatewayError: If the address cannot be bound

        """
        self.host = host
        self.runner = web.AppRunner(self.app, keepalive_timeout=self.idle_timeout)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, host, port)
        try:
            await self.site.start()
        except OSError as e:
            await self.runner.cleanup()
            self.runner = None
            self.site = None
            msg = f"Failed to bind {host or '*'}:{port}: {e}"
            raise GatewayError(msg, details={"host": host, "port": port}) from e

        self._port = self.runner.addresses[0][1]
        logger.info("Gateway listening on %s", self.url)

    async def stop(self) -> None:
        """Stop serving and close every connection."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        self.site = None
        self.runner = None
        self._port = None
        logger.info("Gateway stopped")

    @property
    def port(self) -> int | None:
        """Bound TCP port, None before :meth:`start`."""
        return self._port

    @property
    def url(self) -> str | None:
        if self._port is None:
            return None
        return f"http://{self.host or 'localhost'}:{self._port}/"

    def normalize_path(self, path: str) -> str:
        """Map ``/`` and file paths onto ``/<index>``."""
        if path == "/":
            if not self.selector.resolved:
                return path
            return f"/{self.selector.primary_index}"
        relative = path[1:]
        for f in self.engine.files:
            if f.path == relative:
                return f"/{f.index}"
        return path

    def file_for_path(self, path: str) -> SwarmFile | None:
        """File addressed by ``/<index>``, or None."""
        match = _INDEX_PATH.fullmatch(path)
        if match is None:
            return None
        index = int(match.group(1))
        files = self.engine.files
        if index >= len(files):
            return None
        return files[index]

    async def _handle_request(self, request: Request) -> StreamResponse:
        path = self.normalize_path(request.path)
        logger.debug("%s %s -> %s", request.method, request.path, path)

        if path == "/favicon.ico":
            return web.Response(status=404)
        if path == "/.json":
            return self._status_response(request)
        if path == "/.m3u":
            return self._playlist_response(request)

        f = self.file_for_path(path)
        if f is None:
            return web.Response(status=404)
        return await self._stream_file(request, f)

    def _status_response(self, request: Request) -> Response:
        snapshot = build_status_snapshot(
            self.engine.swarm,
            self.selector.listing(self.predicate),
            request.host,
        )
        return web.json_response(
            snapshot.model_dump(by_alias=True),
            dumps=functools.partial(json.dumps, indent=2),
        )

    def _playlist_response(self, request: Request) -> Response:
        playlist = build_playlist(self.selector.listing(self.predicate), request.host)
        return web.Response(
            text=playlist,
            content_type=PLAYLIST_CONTENT_TYPE,
            charset="utf-8",
        )

    async def _stream_file(self, request: Request, f: SwarmFile) -> StreamResponse:
        byte_range = parse_range(request.headers.get(hdrs.RANGE), f.length)

        response = web.StreamResponse()
        response.headers[hdrs.ACCEPT_RANGES] = "bytes"
        response.headers[hdrs.CONTENT_TYPE] = self.content_type(f.name)
        response.headers["transferMode.dlna.org"] = DLNA_TRANSFER_MODE
        response.headers["contentFeatures.dlna.org"] = DLNA_CONTENT_FEATURES

        if byte_range is None:
            start, end = 0, f.length - 1
            response.content_length = f.length
        else:
            start, end = byte_range.start, byte_range.end
            response.set_status(206)
            response.content_length = byte_range.length
            response.headers[hdrs.CONTENT_RANGE] = (
                f"bytes {byte_range.start}-{byte_range.end}/{f.length}"
            )

        await response.prepare(request)
        request[STREAM_RESPONSE_KEY] = response
        if request.method == hdrs.METH_HEAD or end < start:
            await response.write_eof()
            return response

        if await self._pump(f.create_read_stream(start, end), request, response):
            await response.write_eof()
        return response

    async def _pump(
        self,
        source: AsyncIterator[bytes],
        request: Request,
        response: StreamResponse,
    ) -> bool:
        """Copy ``source`` into ``response`` one chunk at a time.

        Each write is awaited before the next chunk is pulled, so a slow
        client holds back reads from the engine.

        Returns:
            True if the whole body was written

        """
        try:
            async for chunk in source:
                await response.write(chunk)
        except ConnectionError:
            logger.debug("Client %s disconnected from %s", request.remote, request.path)
            return False
        except (EngineError, OSError) as e:
            logger.warning("Stream of %s failed: %s", request.path, e)
            _abort(request)
            return False
        except Exception:
            logger.exception("Unexpected error streaming %s", request.path)
            _abort(request)
            return False
        finally:
            await source.aclose()
        return True
