"""Pydantic models for peerstream.

Provides validated data models for configuration, blocklist ranges and the
status snapshot served by the gateway.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FileSortKey(str, Enum):
    """Display orderings for the file listing."""

    NONE = "none"
    PATH = "path"
    NAME = "name"
    LENGTH = "length"


class BlocklistRange(BaseModel):
    """Inclusive IP address range excluded from peer admission."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(..., description="First address of the range")
    end: str = Field(..., description="Last address of the range")


@dataclass(frozen=True)
class RangeRequest:
    """Inclusive byte range requested through an HTTP Range header."""

    start: int
    end: int

    @property
    def length(self) -> int:
        """Number of bytes covered by the range."""
        return self.end - self.start + 1


class SwarmStats(BaseModel):
    """Snapshot of swarm transfer statistics."""

    downloaded: int = Field(default=0, ge=0, description="Bytes downloaded")
    uploaded: int = Field(default=0, ge=0, description="Bytes uploaded")
    download_speed: int = Field(default=0, ge=0, description="Bytes/sec down")
    upload_speed: int = Field(default=0, ge=0, description="Bytes/sec up")
    total_peers: int = Field(default=0, ge=0, description="Connected peers")
    active_peers: int = Field(
        default=0,
        ge=0,
        description="Connected peers not choking us",
    )
    queued_peers: int = Field(default=0, ge=0, description="Pending connections")


class FileListing(BaseModel):
    """A single file entry of the status snapshot."""

    name: str
    url: str
    length: int


class StatusSnapshot(BaseModel):
    """Body of the ``/.json`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    total_length: int = Field(..., alias="totalLength")
    downloaded: int
    uploaded: int
    download_speed: int = Field(..., alias="downloadSpeed")
    upload_speed: int = Field(..., alias="uploadSpeed")
    total_peers: int = Field(..., alias="totalPeers")
    active_peers: int = Field(..., alias="activePeers")
    files: list[FileListing] = Field(default_factory=list)


class ServerConfig(BaseModel):
    """HTTP gateway configuration."""

    host: str | None = Field(
        default=None,
        description="Host name or IP to bind to (None binds all interfaces)",
    )
    port: int = Field(default=8888, ge=0, le=65535, description="HTTP port")
    idle_timeout: float = Field(
        default=36000.0,
        gt=0,
        description="Idle timeout for client connections in seconds",
    )
    chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        le=16 * 1024 * 1024,
        description="Largest chunk copied from a file stream per write",
    )


class StreamConfig(BaseModel):
    """Torrent streaming configuration."""

    index: int | None = Field(
        default=None,
        ge=0,
        description="Index of the file to stream (default: largest file)",
    )
    select_all: bool = Field(default=False, description="Select all files")
    sort: FileSortKey = Field(
        default=FileSortKey.NONE,
        description="Display order of the file listing",
    )
    blocklist: str | None = Field(default=None, description="Blocklist file path")
    peers: list[str] = Field(
        default_factory=list,
        description="Peers to add by ip:port",
    )
    peer_port: int | None = Field(
        default=None,
        ge=0,
        le=65535,
        description="Peer listening port",
    )
    connections: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum connected peers",
    )
    remove_on_exit: bool = Field(
        default=False,
        description="Remove downloaded files on exit",
    )
    on_listening: str | None = Field(
        default=None,
        description="Shell command run with the stream URL once serving",
    )
    on_downloaded: str | None = Field(
        default=None,
        description="Shell command run once the selected files are downloaded",
    )

    @field_validator("peers")
    @classmethod
    def validate_peers(cls, v: list[str]) -> list[str]:
        """Require ``ip:port`` peer addresses."""
        for peer in v:
            host, sep, port = peer.rpartition(":")
            if not sep or not host or not port.isdigit():
                msg = f"Invalid peer address {peer!r}, expected ip:port"
                raise ValueError(msg)
        return v


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(default=None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Write JSON records to the log file",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
