"""Engine construction for the command line.

A torrent engine is plugged in as ``module:callable``; the callable receives
the target (torrent file, magnet link or path) and the loaded
:class:`~peerstream.models.Config` and returns a
:class:`~peerstream.engine.protocol.SwarmEngine`.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Callable

from peerstream.engine.local import DirectoryEngine
from peerstream.utils.exceptions import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine
    from peerstream.models import Config

EngineFactory = Callable[[str, "Config"], "SwarmEngine"]


def directory_engine(target: str, config: Config) -> DirectoryEngine:
    """Serve a local file or directory."""
    return DirectoryEngine(target, chunk_size=config.server.chunk_size)


def load_engine_factory(reference: str | None) -> EngineFactory:
    """Resolve ``module:callable`` to an engine factory.

    Args:
        reference: Import reference, or None for :func:`directory_engine`

    Raises:
        ConfigurationError: If the reference is malformed or cannot be imported

    """
    if not reference:
        return directory_engine

    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        msg = f"Engine must be given as module:callable, got {reference!r}"
        raise ConfigurationError(msg)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        msg = f"Cannot import engine module {module_name!r}: {e}"
        raise ConfigurationError(msg) from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        msg = f"{reference!r} is not a callable engine factory"
        raise ConfigurationError(msg)
    return factory
