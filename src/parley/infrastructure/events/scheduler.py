"""Keyed one-shot timers."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TimerAction = Callable[[], Awaitable[None] | None]


class KeyedScheduler:
    """Deferred actions addressed by key.

    At most one action is pending per key: scheduling a key again cancels
    the previous timer first. When a timer fires, its key is released before
    the action runs, so rescheduling the same key from then on never cancels
    work that is already in flight.

    Actions may be plain callables or coroutine functions. Exceptions raised
    by an action are logged and never propagate to the loop.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[None]] = set()

    def schedule(self, key: str, delay: float, action: TimerAction) -> None:
        """Run ``action`` after ``delay`` seconds, replacing any pending one.

        Must be called from the event loop thread.

        Args:
            key: Timer identity.
            delay: Delay in seconds.
            action: Callable to run when the timer fires.
        """
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, action)

    def cancel(self, key: str) -> bool:
        """Cancel the pending action for ``key``.

        Returns:
            True if an action was pending.
        """
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def cancel_all(self) -> None:
        """Cancel every pending timer. Actions already running are not touched."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    async def wait_running(self) -> None:
        """Wait until every action that has already fired has finished."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def _fire(self, key: str, action: TimerAction) -> None:
        self._timers.pop(key, None)
        try:
            result = action()
        except Exception:
            logger.exception("Timer action failed: %s", key)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(lambda t: self._on_done(key, t))

    def _on_done(self, key: str, task: "asyncio.Task[None]") -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Timer action failed: %s", key, exc_info=error)
