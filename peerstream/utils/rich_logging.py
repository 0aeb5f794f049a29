"""Rich logging integration for peerstream.

Provides the Rich console handler used for interactive output and the plain
formatter used for log files.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape


class StreamRichHandler(RichHandler):
    """RichHandler that highlights HTTP request lines and swarm events.

    Request lines such as ``GET /0 206`` are colored cyan and engine event
    names such as ``invalid-piece`` are colored orange.
    """

    LEVEL_COLORS: dict[str, str] = {
        "DEBUG": "dim",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red",
    }

    REQUEST_PATTERN = re.compile(r"\b(GET|HEAD|OPTIONS|POST) (/\S*)")
    EVENT_PATTERN = re.compile(
        r"\b(ready|verifying|interested|uninterested|hotswap|invalid-piece)\b"
    )

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        show_colors: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize handler.

        Args:
            *args: Positional arguments for RichHandler
            console: Optional Rich Console instance
            show_colors: Whether to highlight request lines and event names
            **kwargs: Keyword arguments for RichHandler

        """
        if console is None:
            console = Console(file=sys.stderr, markup=True)
        self.show_colors = show_colors
        if "markup" not in kwargs:
            kwargs["markup"] = True
        super().__init__(*args, console=console, **kwargs)

    def _colorize(self, message: str) -> str:
        if not self.show_colors:
            return message
        message = self.REQUEST_PATTERN.sub(r"[bright_cyan]\1 \2[/bright_cyan]", message)
        return self.EVENT_PATTERN.sub(r"[#ffa500]\1[/#ffa500]", message)

    def render_message(self, record: logging.LogRecord, message: str) -> Any:
        """Render message with highlights applied."""
        # Paths and headers may contain brackets
        return super().render_message(record, self._colorize(escape(message)))


class FileFormatter(logging.Formatter):
    """Plain formatter for log files that strips Rich markup."""

    MARKUP_PATTERN = re.compile(r"\[/?[#a-z_ 0-9]+\]")

    def format(self, record: logging.LogRecord) -> str:
        """Format record without markup tags."""
        return self.MARKUP_PATTERN.sub("", super().format(record))


def create_rich_handler(level: str = "INFO", **kwargs: Any) -> RichHandler:
    """Create the console handler used by :func:`setup_logging`."""
    handler = StreamRichHandler(
        level=level,
        show_path=False,
        rich_tracebacks=True,
        **kwargs,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    return handler
