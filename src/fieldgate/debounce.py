"""Debounced scheduling on the running event loop."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesces bursts of calls into one pending task.

    Each call cancels the task still waiting from the previous call, so only
    the last call in a burst runs. A call that already started running is
    left to finish; callers discard its result if it is stale.
    """

    def __init__(self, name: str = "debounce"):
        self.name = name
        self._task: asyncio.Task | None = None
        self._waiting = False

    @property
    def pending(self) -> asyncio.Task | None:
        """The scheduled task, if it has not finished yet."""
        if self._task is not None and not self._task.done():
            return self._task
        return None

    def call(self, delay_ms: int, fn: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Schedule ``fn`` after ``delay_ms``, replacing any waiting call.

        A failure is logged when the task finishes and still raised to anyone
        awaiting the task, so the task can be left unawaited.
        """
        if self._waiting:
            self.cancel()
        self._waiting = True
        self._task = asyncio.get_running_loop().create_task(self._run(delay_ms, fn))
        self._task.add_done_callback(self._log_failure)
        return self._task

    def cancel(self) -> None:
        """Cancel the scheduled call, if it has not finished yet."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._waiting = False

    async def _run(self, delay_ms: int, fn: Callable[[], Awaitable[Any]]) -> Any:
        await asyncio.sleep(delay_ms / 1000 if delay_ms > 0 else 0)
        self._waiting = False
        return await fn()

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Deferred validation '%s' failed", self.name, exc_info=error)
