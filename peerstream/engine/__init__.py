"""Swarm engine contract and adapters."""

from __future__ import annotations

from peerstream.engine.factory import directory_engine, load_engine_factory
from peerstream.engine.local import DirectoryEngine
from peerstream.engine.protocol import Swarm, SwarmEngine, SwarmFile, Wire

__all__ = [
    "DirectoryEngine",
    "directory_engine",
    "load_engine_factory",
    "Swarm",
    "SwarmEngine",
    "SwarmFile",
    "Wire",
]
