"""Fire-and-forget tasks owned by an engine or session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class TaskTracker:
    """Holds references to background tasks until they finish.

    Failures are logged when the task completes, since nobody awaits it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._pending: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Background task of %s failed",
                self.name,
                exc_info=task.exception(),
            )

    async def drain(self) -> None:
        """Wait for every pending task, including ones spawned meanwhile."""
        while self._pending:
            await asyncio.wait(set(self._pending))

    async def shutdown(self, grace: float) -> None:
        """Cancel whatever is still pending and give it ``grace`` seconds to exit."""
        pending = {t for t in self._pending if not t.done()}
        for task in pending:
            task.cancel()
        if pending:
            _done, stuck = await asyncio.wait(pending, timeout=grace)
            if stuck:
                logger.warning("%d task(s) of %s ignored cancellation", len(stuck), self.name)
        self._pending.clear()
