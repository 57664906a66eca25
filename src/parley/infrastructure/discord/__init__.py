"""Discord integration."""

from parley.infrastructure.discord.client import ParleyClient, create_intents
from parley.infrastructure.discord.event_adapter import DiscordEventAdapter
from parley.infrastructure.discord.messaging import (
    MAX_MESSAGE_LENGTH,
    DiscordMessagingService,
    split_message,
)
from parley.infrastructure.discord.voice import (
    CaptureSink,
    DiscordVoiceManager,
    has_humans,
)

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "CaptureSink",
    "DiscordEventAdapter",
    "DiscordMessagingService",
    "DiscordVoiceManager",
    "ParleyClient",
    "create_intents",
    "has_humans",
    "split_message",
]
