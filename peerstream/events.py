"""Typed event bus for swarm engine notifications.

The swarm engine publishes lifecycle and demand events on an :class:`EventBus`
it owns; the gateway, flow controller and diagnostics monitor subscribe typed
handlers to it instead of listening on the engine object itself.
"""

from __future__ import annotations

import inspect
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from peerstream.utils.logging_config import LoggingContext, get_logger


class EngineEventType(Enum):
    """Events raised by the swarm engine."""

    # Metadata resolved, file list available
    READY = "ready"
    # Integrity check of existing data
    VERIFYING = "verifying"
    VERIFY = "verify"
    # Consumer demand
    INTERESTED = "interested"
    UNINTERESTED = "uninterested"
    # Diagnostics
    HOTSWAP = "hotswap"
    INVALID_PIECE = "invalid-piece"


@dataclass
class Event:
    """A single engine notification and its payload."""

    event_type: EngineEventType
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


EventCallback = Callable[[Event], Union[Awaitable[None], None]]


class EventBus:
    """Publish/subscribe channel for engine events.

    Handlers run in subscription order on the emitting task, so a handler
    finishes its state changes before the next event is dispatched. A failing
    handler is logged and does not prevent the remaining handlers from running.
    """

    def __init__(self) -> None:
        self.handlers: dict[EngineEventType, list[EventCallback]] = {}
        self.logger = get_logger(__name__)

    def subscribe(self, event_type: EngineEventType, handler: EventCallback) -> None:
        """Register a handler for an event type.

        Args:
            event_type: Type of event to handle
            handler: Callable taking the event; may be a coroutine function
        """
        self.handlers.setdefault(event_type, []).append(handler)
        self.logger.debug(
            "Registered handler %s for event type '%s'",
            getattr(handler, "__qualname__", handler),
            event_type.value,
        )

    def unsubscribe(self, event_type: EngineEventType, handler: EventCallback) -> None:
        """Unregister a handler; unknown handlers are ignored."""
        handlers = self.handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self.logger.debug(
                "Unregistered handler %s for event type '%s'",
                getattr(handler, "__qualname__", handler),
                event_type.value,
            )

    async def emit(
        self,
        event_type: EngineEventType,
        source: str | None = None,
        **data: Any,
    ) -> Event:
        """Emit an event and run its handlers.

        Args:
            event_type: Type of event
            source: Optional name of the emitting component
            **data: Event payload

        Returns:
            The dispatched event
        """
        event = Event(event_type=event_type, source=source, data=data)
        await self._handle_event(event)
        return event

    async def _handle_event(self, event: Event) -> None:
        handlers = list(self.handlers.get(event.event_type, []))
        if not handlers:
            self.logger.debug("No handlers for event type: %s", event.event_type.value)
            return

        with LoggingContext(
            "event_handle",
            event_type=event.event_type.value,
            event_id=event.event_id,
        ):
            for handler in handlers:
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    self.logger.exception(
                        "Handler %s failed for event '%s'",
                        getattr(handler, "__qualname__", handler),
                        event.event_type.value,
                    )
