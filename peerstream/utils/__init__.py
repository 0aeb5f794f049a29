"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from peerstream.utils.exceptions import (
    BlocklistError,
    ConfigurationError,
    EngineError,
    FileSelectionError,
    GatewayError,
    PeerStreamError,
    StreamReadError,
)
from peerstream.utils.logging_config import LoggingContext, get_logger, setup_logging

__all__ = [
    # Exceptions
    "BlocklistError",
    "ConfigurationError",
    "EngineError",
    "FileSelectionError",
    "GatewayError",
    "PeerStreamError",
    "StreamReadError",
    # Logging
    "LoggingContext",
    "get_logger",
    "setup_logging",
]
