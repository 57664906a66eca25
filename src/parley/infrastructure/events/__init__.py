"""Event system infrastructure."""

from parley.infrastructure.events.dispatcher import EventDispatcher, event_handler
from parley.infrastructure.events.scheduler import KeyedScheduler

__all__ = [
    "EventDispatcher",
    "KeyedScheduler",
    "event_handler",
]
