"""Bodies of the ``/.json`` and ``/.m3u`` endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from peerstream.models import FileListing, StatusSnapshot, SwarmStats

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import Swarm, SwarmFile


def file_url(host: str, file: SwarmFile) -> str:
    return f"http://{host}/{file.index}"


def collect_swarm_stats(swarm: Swarm) -> SwarmStats:
    """Read a fresh statistics snapshot from the swarm."""
    wires = list(swarm.wires)
    return SwarmStats(
        downloaded=swarm.downloaded,
        uploaded=swarm.uploaded,
        download_speed=int(swarm.download_speed()),
        upload_speed=int(swarm.upload_speed()),
        total_peers=len(wires),
        active_peers=sum(1 for wire in wires if not wire.peer_choking),
        queued_peers=swarm.queued,
    )


def build_status_snapshot(
    swarm: Swarm,
    files: Sequence[SwarmFile],
    host: str,
) -> StatusSnapshot:
    """Build the status document for the listed files."""
    stats = collect_swarm_stats(swarm)
    return StatusSnapshot(
        total_length=sum(f.length for f in files),
        downloaded=stats.downloaded,
        uploaded=stats.uploaded,
        download_speed=stats.download_speed,
        upload_speed=stats.upload_speed,
        total_peers=stats.total_peers,
        active_peers=stats.active_peers,
        files=[
            FileListing(name=f.name, url=file_url(host, f), length=f.length)
            for f in files
        ],
    )


def build_playlist(files: Sequence[SwarmFile], host: str) -> str:
    """Build an extended M3U playlist with one entry per file."""
    entries = [f"#EXTINF:-1,{f.path}\n{file_url(host, f)}" for f in files]
    return "\n".join(["#EXTM3U", *entries])
