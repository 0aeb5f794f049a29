"""Peer admission helpers.

Provides blocklist parsing and an address filter built from it.
"""

from __future__ import annotations

from peerstream.security.blocklist import (
    BlocklistFilter,
    parse_blocklist,
    parse_blocklist_text,
)

__all__ = [
    "BlocklistFilter",
    "parse_blocklist",
    "parse_blocklist_text",
]
