"""Counters for engine verification and diagnostic events."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from peerstream.events import EngineEventType, Event

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine

logger = logging.getLogger(__name__)


class DiagnosticsMonitor:
    """Tracks verification progress, invalid pieces and hotswaps.

    ``verifying`` carries the torrent's ``piece_count``; each following
    ``verify`` event counts one good piece.
    """

    def __init__(self, engine: SwarmEngine):
        self.engine = engine
        self.piece_count = 0
        self.verified = 0
        self.invalid = 0
        self.hotswaps = 0
        self.verifying = False
        self.verify_progress = 0
        self._handlers = {
            EngineEventType.VERIFYING: self._on_verifying,
            EngineEventType.VERIFY: self._on_verify,
            EngineEventType.INVALID_PIECE: self._on_invalid_piece,
            EngineEventType.HOTSWAP: self._on_hotswap,
            EngineEventType.READY: self._on_ready,
        }

    def attach(self) -> None:
        for event_type, handler in self._handlers.items():
            self.engine.events.subscribe(event_type, handler)

    def detach(self) -> None:
        for event_type, handler in self._handlers.items():
            self.engine.events.unsubscribe(event_type, handler)

    @property
    def downloaded_percentage(self) -> int:
        """Share of pieces verified so far, rounded down."""
        if not self.piece_count:
            return 0
        return math.floor(self.verified / self.piece_count * 100)

    def _on_verifying(self, event: Event) -> None:
        self.piece_count = int(event.data.get("piece_count", self.piece_count))
        self.verifying = True
        self.verify_progress = 0
        logger.info("Verifying downloaded data")

    def _on_verify(self, event: Event) -> None:
        self.verified += 1
        if self.verifying and self.piece_count:
            index = int(event.data.get("index", self.verified - 1))
            self.verify_progress = round((index + 1) / self.piece_count * 100)
            logger.debug("Verifying downloaded: %d%%", self.verify_progress)

    def _on_invalid_piece(self, event: Event) -> None:
        self.invalid += 1
        logger.warning("Invalid piece %s", event.data.get("index", "?"))

    def _on_hotswap(self, _event: Event) -> None:
        self.hotswaps += 1
        logger.debug("Peer hotswap (%d total)", self.hotswaps)

    def _on_ready(self, _event: Event) -> None:
        self.verifying = False

    def summary(self) -> dict[str, Any]:
        return {
            "piece_count": self.piece_count,
            "verified": self.verified,
            "invalid": self.invalid,
            "hotswaps": self.hotswaps,
            "downloaded_percentage": self.downloaded_percentage,
        }
