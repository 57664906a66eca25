"""Periodic background task runner."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async action at a fixed interval.

    Runs as an asyncio task and gracefully shuts down on stop signal.
    Used for the periodic save of persisted state and the voice channel
    presence check.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], Awaitable[None]],
        interval_seconds: float,
        *,
        run_immediately: bool = False,
    ) -> None:
        """Initialize PeriodicTask.

        Args:
            name: Name used in log messages.
            action: Coroutine function to run every interval.
            interval_seconds: Interval between runs.
            run_immediately: Run once right after start instead of waiting
                for the first interval.
        """
        self._name = name
        self._action = action
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        # _stop_event uses inverted logic:
        # - set() means "stop signal active" (not running)
        # - clear() means "no stop signal" (running)
        self._stop_event = asyncio.Event()
        self._stop_event.set()

    async def start(self) -> None:
        """Start the loop; returns when stop() is called."""
        if not self._stop_event.is_set():
            logger.warning("%s.start() called while already running; ignoring.", self._name)
            return
        self._stop_event.clear()
        logger.info("%s started (interval=%.0fs)", self._name, self._interval)

        if self._run_immediately:
            await self._run_once()

        while not self._stop_event.is_set():
            # Wait for stop signal or timeout
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break  # Stop signal received
            except asyncio.TimeoutError:
                pass
            await self._run_once()

        logger.info("%s stopped", self._name)

    async def _run_once(self) -> None:
        try:
            await self._action()
        except Exception as e:
            logger.error("%s failed (interval=%.0fs): %s", self._name, self._interval, e)

    async def stop(self) -> None:
        """Signal the loop to stop after the current run completes."""
        self._stop_event.set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set()
