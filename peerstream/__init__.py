"""peerstream - stream files of a torrent swarm over HTTP."""

from __future__ import annotations

__version__ = "0.1.0"
