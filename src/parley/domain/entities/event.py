"""Event entity for event-driven architecture."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EventType(Enum):
    """Event types for the event-driven system."""

    MESSAGE = "message"
    REACTION = "reaction"
    VOICE_STATE = "voice_state"


@dataclass(frozen=True)
class Event:
    """Domain event.

    Attributes:
        type: Event type.
        payload: Event-specific data.
        created_at: Event creation time.
    """

    type: EventType
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
