"""Exception hierarchy for peerstream.

Provides a small exception hierarchy so callers at the process boundary can
tell configuration, blocklist, selection and streaming failures apart.
"""

from __future__ import annotations

from typing import Any


class PeerStreamError(Exception):
    """Base exception for all peerstream errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize peerstream error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(PeerStreamError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class DiskError(PeerStreamError):
    """Disk I/O related errors."""


class FileSystemError(DiskError):
    """File system operation errors."""


class BlocklistError(FileSystemError):
    """Blocklist file could not be opened or read."""


class FileSelectionError(ValidationError):
    """Requested file index does not exist in the torrent."""


class NetworkError(PeerStreamError):
    """Network-related errors."""


class GatewayError(NetworkError):
    """HTTP gateway could not bind or serve."""


class EngineError(PeerStreamError):
    """Swarm engine collaborator errors."""


class StreamReadError(EngineError):
    """A file stream failed while bytes were being read from it."""
