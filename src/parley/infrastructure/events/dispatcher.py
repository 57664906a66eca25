"""Event dispatcher for platform events."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from parley.domain.entities.event import Event, EventType

logger = logging.getLogger(__name__)

# Handler type: async function that takes an Event and returns None
EventHandler = Callable[[Event], Awaitable[None]]


def event_handler(event_type: EventType) -> Callable[[EventHandler], EventHandler]:
    """Decorator that marks a coroutine as the handler for an event type.

    Usage:
        @event_handler(EventType.MESSAGE)
        async def handle_message(event: Event) -> None:
            ...
    """

    def decorator(func: EventHandler) -> EventHandler:
        func._event_type = event_type  # type: ignore[attr-defined]
        return func

    return decorator


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__name__", None) or type(handler).__name__


class EventDispatcher:
    """Routes events to the handlers registered for their type.

    Handler failures are logged and never reach the caller, so one broken
    handler cannot take down the platform client's event loop.
    """

    def __init__(self) -> None:
        """Initialize the dispatcher."""
        self._handlers: dict[EventType, list[EventHandler]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def register(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler for an event type."""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Registered handler for %s: %s", event_type.value, _name(handler))

    def register_handler(self, handler: EventHandler) -> None:
        """Register a handler decorated with @event_handler.

        Raises:
            ValueError: If the handler was not decorated.
        """
        event_type = getattr(handler, "_event_type", None)
        if event_type is None:
            raise ValueError(
                f"Handler {_name(handler)} has no _event_type attribute. "
                "Use the @event_handler decorator."
            )
        self.register(event_type, handler)

    def has_handlers(self, event_type: EventType) -> bool:
        return bool(self._handlers.get(event_type))

    async def dispatch(self, event: Event) -> None:
        """Run every handler registered for the event's type, in order."""
        handlers = self._handlers.get(event.type, [])
        if not handlers:
            logger.debug("No handler registered for event type: %s", event.type.value)
            return

        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Error in event handler %s for event %s",
                    _name(handler),
                    event.type.value,
                )

    def dispatch_in_background(self, event: Event) -> "asyncio.Task[None]":
        """Dispatch without waiting; the task is tracked until it finishes."""
        task = asyncio.create_task(self.dispatch(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel background dispatches and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
