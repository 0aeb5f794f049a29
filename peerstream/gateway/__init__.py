"""HTTP streaming gateway."""

from __future__ import annotations

from peerstream.gateway.ranges import parse_range
from peerstream.gateway.server import StreamGateway, guess_content_type
from peerstream.gateway.status import (
    build_playlist,
    build_status_snapshot,
    collect_swarm_stats,
)

__all__ = [
    "StreamGateway",
    "build_playlist",
    "build_status_snapshot",
    "collect_swarm_stats",
    "guess_content_type",
    "parse_range",
]
