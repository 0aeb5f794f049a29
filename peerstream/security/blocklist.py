"""Peer blocklist parsing and matching.

Blocklists use the PeerGuardian text format: one ``<label>:<start>-<end>``
range per line, for example::

    # comment
    Some Organization:1.2.3.0-1.2.3.255

Lines that do not match are skipped. Lists may be gzip, bzip2 or xz
compressed.
"""

from __future__ import annotations

import bisect
import bz2
import gzip
import ipaddress
import logging
import lzma
import re
from pathlib import Path
from typing import Iterable

from peerstream.models import BlocklistRange
from peerstream.utils.exceptions import BlocklistError

logger = logging.getLogger(__name__)

BLOCKLIST_LINE = re.compile(
    r"^\s*[^#].*?\s*:\s*([a-f0-9.:]+?)\s*-\s*([a-f0-9.:]+?)\s*$",
    re.IGNORECASE,
)

_OPENERS = {
    ".gz": gzip.open,
    ".bz2": bz2.open,
    ".xz": lzma.open,
}


def _read_text(path: Path) -> str:
    opener = _OPENERS.get(path.suffix.lower())
    if opener is None:
        return path.read_text(encoding="utf-8", errors="replace")
    with opener(path, "rt", encoding="utf-8", errors="replace") as f:
        return f.read()


def parse_blocklist_text(text: str) -> list[BlocklistRange]:
    """Parse blocklist content into ranges, in file order."""
    ranges: list[BlocklistRange] = []
    for line in text.splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = BLOCKLIST_LINE.match(line)
        if match:
            ranges.append(BlocklistRange(start=match.group(1), end=match.group(2)))
    return ranges


def parse_blocklist(path: str | Path) -> list[BlocklistRange]:
    """Read a blocklist file and return its ranges.

    Args:
        path: Path to a plain or compressed blocklist file

    Returns:
        Ranges in file order

    Raises:
        BlocklistError: If the file cannot be opened, read or decompressed

    """
    file_path = Path(path).expanduser()
    try:
        text = _read_text(file_path)
    except (OSError, EOFError, lzma.LZMAError) as e:
        msg = f"Cannot read blocklist {file_path}: {e}"
        raise BlocklistError(msg, details={"path": str(file_path)}) from e

    ranges = parse_blocklist_text(text)
    logger.info("Loaded %d blocklist ranges from %s", len(ranges), file_path)
    return ranges


class BlocklistFilter:
    """Answers whether a peer address falls inside any blocklist range.

    Ranges are kept as sorted, merged integer intervals per address family so
    lookups are a binary search.
    """

    def __init__(self, ranges: Iterable[BlocklistRange] = ()):
        """Initialize filter.

        Args:
            ranges: Parsed blocklist ranges

        """
        self._starts: dict[int, list[int]] = {4: [], 6: []}
        self._ends: dict[int, list[int]] = {4: [], 6: []}
        self.skipped = 0
        self.stats: dict[str, int] = {"matches": 0, "blocks": 0}
        self.load(ranges)

    def load(self, ranges: Iterable[BlocklistRange]) -> None:
        """Replace the filter contents with ``ranges``."""
        intervals: dict[int, list[tuple[int, int]]] = {4: [], 6: []}
        self.skipped = 0

        for entry in ranges:
            try:
                start = ipaddress.ip_address(entry.start)
                end = ipaddress.ip_address(entry.end)
            except ValueError:
                self.skipped += 1
                logger.debug("Skipping blocklist range %s-%s", entry.start, entry.end)
                continue
            if start.version != end.version or int(start) > int(end):
                self.skipped += 1
                logger.debug("Skipping blocklist range %s-%s", entry.start, entry.end)
                continue
            intervals[start.version].append((int(start), int(end)))

        for version, items in intervals.items():
            starts: list[int] = []
            ends: list[int] = []
            for start, end in sorted(items):
                if ends and start <= ends[-1] + 1:
                    ends[-1] = max(ends[-1], end)
                else:
                    starts.append(start)
                    ends.append(end)
            self._starts[version] = starts
            self._ends[version] = ends

        logger.debug(
            "Blocklist filter loaded: %d IPv4 and %d IPv6 intervals (%d skipped)",
            len(self._starts[4]),
            len(self._starts[6]),
            self.skipped,
        )

    def __len__(self) -> int:
        return len(self._starts[4]) + len(self._starts[6])

    def is_blocked(self, ip: str) -> bool:
        """Check if an IP address is blocked.

        Args:
            ip: IPv4 or IPv6 address string

        Returns:
            True if the address is inside a range or is not a valid address

        """
        try:
            addr = ipaddress.ip_address(ip)
        except ValueError:
            logger.warning("Invalid IP address format: %s", ip)
            return True

        self.stats["matches"] += 1
        value = int(addr)
        starts = self._starts[addr.version]
        pos = bisect.bisect_right(starts, value) - 1
        if pos >= 0 and value <= self._ends[addr.version][pos]:
            self.stats["blocks"] += 1
            return True
        return False
