"""Demand-driven pause/resume of the swarm.

Peers are only asked for data while some consumer is waiting on it. The
engine raises ``uninterested`` when no reader is blocked on missing data (all
connections idle, or every file deselected) and ``interested`` when one is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from peerstream.events import EngineEventType, Event

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine


class FlowController:
    """Pauses the swarm on ``uninterested`` and resumes it on ``interested``."""

    def __init__(self, engine: SwarmEngine):
        self.engine = engine
        self.logger = logging.getLogger(__name__)
        self._paused = False
        self._attached = False
        self.stats = {"pauses": 0, "resumes": 0}

    @property
    def paused(self) -> bool:
        return self._paused

    def attach(self) -> None:
        """Subscribe to the engine's demand events."""
        if self._attached:
            return
        self.engine.events.subscribe(EngineEventType.INTERESTED, self._on_interested)
        self.engine.events.subscribe(EngineEventType.UNINTERESTED, self._on_uninterested)
        self._attached = True

    def detach(self) -> None:
        """Unsubscribe from the engine's demand events."""
        if not self._attached:
            return
        self.engine.events.unsubscribe(EngineEventType.INTERESTED, self._on_interested)
        self.engine.events.unsubscribe(EngineEventType.UNINTERESTED, self._on_uninterested)
        self._attached = False

    def _on_interested(self, _event: Event) -> None:
        if not self._paused:
            return
        self.engine.swarm.resume()
        self._paused = False
        self.stats["resumes"] += 1
        self.logger.info("Consumer interested, swarm resumed")

    def _on_uninterested(self, _event: Event) -> None:
        if self._paused:
            return
        self.engine.swarm.pause()
        self._paused = True
        self.stats["pauses"] += 1
        self.logger.info("No consumer interested, swarm paused")
