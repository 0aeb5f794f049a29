"""Command line interface for peerstream.

Provides:
- ``serve``: stream a target's files over HTTP until interrupted
- ``list``: print the files of a target
- ``status``: query a running gateway
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp
import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from peerstream import __version__
from peerstream.config.config import ConfigManager
from peerstream.engine.factory import load_engine_factory
from peerstream.models import FileSortKey, LogLevel
from peerstream.session.session import StreamSession
from peerstream.utils.exceptions import PeerStreamError

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine
    from peerstream.models import Config

logger = logging.getLogger(__name__)

STATUS_TIMEOUT = 10.0


def _format_bytes(size: float) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def _get_config_manager(ctx: click.Context, overrides: dict[str, Any]) -> ConfigManager:
    """Load configuration and apply command line overrides."""
    verbosity = ctx.obj.get("verbosity", 0)
    if verbosity >= 2:
        overrides["observability.log_level"] = LogLevel.DEBUG.value
    elif verbosity == 1:
        overrides.setdefault("observability.log_level", LogLevel.INFO.value)

    try:
        cfg_mgr = ConfigManager(ctx.obj.get("config"))
        cfg_mgr.apply_overrides(overrides)
    except PeerStreamError as e:
        raise click.ClickException(str(e)) from e
    return cfg_mgr


def _create_engine(reference: str | None, target: str, cfg: Config) -> SwarmEngine:
    try:
        factory = load_engine_factory(reference)
        return factory(target, cfg)
    except PeerStreamError as e:
        raise click.ClickException(str(e)) from e


def _files_table(session: StreamSession, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Index", justify="right", style="cyan")
    table.add_column("Path", style="white")
    table.add_column("Size", justify="right", style="green")

    primary = session.selector.primary_index if session.selector.resolved else None
    for f in session.files():
        marker = " [bold yellow]*[/bold yellow]" if f.index == primary else ""
        table.add_row(str(f.index), f"{escape(f.path)}{marker}", _format_bytes(f.length))
    return table


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.version_option(__version__, prog_name="peerstream")
@click.pass_context
def cli(ctx, config, verbose):
    """Peerstream - stream torrent files over HTTP."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbosity"] = verbose


def _diagnostics_line(session: StreamSession) -> str:
    summary = session.diagnostics.summary()
    return (
        f"[green]Verified[/green] {summary['verified']} pieces "
        f"({summary['downloaded_percentage']}%), "
        f"{summary['invalid']} invalid, {summary['hotswaps']} hotswaps"
    )


@cli.command()
@click.argument("target")
@click.option("--port", "-p", type=int, help="HTTP port (0 picks a free one)")
@click.option("--hostname", type=str, help="Host name or IP to bind the server to")
@click.option("--index", "-i", type=int, help="Index of the file to stream")
@click.option("--all", "-a", "select_all", is_flag=True, help="Select all files")
@click.option(
    "--sort",
    type=click.Choice([k.value for k in FileSortKey]),
    help="Display order of the file listing",
)
@click.option("--blocklist", "-b", type=click.Path(), help="Blocklist file")
@click.option("--peer", "-e", "peers", multiple=True, help="Add a peer by ip:port")
@click.option("--peer-port", type=int, help="Peer listening port")
@click.option("--connections", type=int, help="Maximum connected peers")
@click.option(
    "--remove",
    "-r",
    "remove_on_exit",
    is_flag=True,
    help="Remove downloaded files on exit",
)
@click.option("--on-listening", help="Command to run with the stream URL once serving")
@click.option("--on-downloaded", help="Command to run once the download completes")
@click.option("--engine", "engine_ref", help="Engine factory as module:callable")
@click.pass_context
def serve(ctx, target, engine_ref, **options):
    """Stream the files of TARGET over HTTP."""
    console = Console()
    cfg_mgr = _get_config_manager(
        ctx,
        {
            "server.port": options["port"],
            "server.host": options["hostname"],
            "stream.index": options["index"],
            "stream.select_all": options["select_all"] or None,
            "stream.sort": options["sort"],
            "stream.blocklist": options["blocklist"],
            "stream.peers": list(options["peers"]) or None,
            "stream.peer_port": options["peer_port"],
            "stream.connections": options["connections"],
            "stream.remove_on_exit": options["remove_on_exit"] or None,
            "stream.on_listening": options["on_listening"],
            "stream.on_downloaded": options["on_downloaded"],
        },
    )
    cfg = cfg_mgr.config
    engine = _create_engine(engine_ref, target, cfg)

    try:
        asyncio.run(_serve(StreamSession(engine, cfg), console))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
    except PeerStreamError as e:
        raise click.ClickException(str(e)) from e


async def _serve(session: StreamSession, console: Console) -> None:
    try:
        await session.start()
        await session.wait_ready()
        console.print(_files_table(session, "Files"))
        console.print(
            f"[green]Streaming[/green] {escape(session.selector.primary.path)} "
            f"at [bold]{session.url}[/bold]",
        )
        console.print(f"Playlist: {session.url}.m3u")
        console.print(_diagnostics_line(session))
        await asyncio.Event().wait()
    finally:
        await session.stop()
        console.print(_diagnostics_line(session))


@cli.command(name="list")
@click.argument("target")
@click.option(
    "--sort",
    type=click.Choice([k.value for k in FileSortKey]),
    help="Display order of the file listing",
)
@click.option("--engine", "engine_ref", help="Engine factory as module:callable")
@click.pass_context
def list_files(ctx, target, sort, engine_ref):
    """List the files of TARGET."""
    console = Console()
    cfg = _get_config_manager(ctx, {"stream.sort": sort}).config
    engine = _create_engine(engine_ref, target, cfg)

    try:
        asyncio.run(_list(StreamSession(engine, cfg, list_only=True), console))
    except PeerStreamError as e:
        raise click.ClickException(str(e)) from e


async def _list(session: StreamSession, console: Console) -> None:
    try:
        await session.start()
        await session.wait_ready()
        console.print(_files_table(session, "Files"))
    finally:
        await session.stop()


@cli.command()
@click.argument("url", default="http://localhost:8888/")
def status(url):
    """Show the status of a running gateway at URL."""
    console = Console()
    try:
        snapshot = asyncio.run(_fetch_status(url))
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise click.ClickException(f"Cannot reach {url}: {e}") from e

    table = Table(title="Swarm")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Downloaded", _format_bytes(snapshot["downloaded"]))
    table.add_row("Uploaded", _format_bytes(snapshot["uploaded"]))
    table.add_row("Download speed", f"{_format_bytes(snapshot['downloadSpeed'])}/s")
    table.add_row("Upload speed", f"{_format_bytes(snapshot['uploadSpeed'])}/s")
    table.add_row("Peers", f"{snapshot['activePeers']}/{snapshot['totalPeers']}")
    table.add_row("Total length", _format_bytes(snapshot["totalLength"]))
    console.print(table)

    files = Table(title="Files")
    files.add_column("Name", style="white")
    files.add_column("URL", style="cyan")
    files.add_column("Size", justify="right", style="green")
    for entry in snapshot["files"]:
        files.add_row(escape(entry["name"]), entry["url"], _format_bytes(entry["length"]))
    console.print(files)


async def _fetch_status(url: str) -> dict[str, Any]:
    status_url = url.rstrip("/") + "/.json"
    timeout = aiohttp.ClientTimeout(total=STATUS_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session, session.get(
        status_url,
    ) as resp:
        resp.raise_for_status()
        return await resp.json()


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
