"""Handler for VOICE_STATE events."""

import logging

from parley.domain.entities import Event
from parley.domain.entities.event import EventType
from parley.domain.services import VoicePresenceService
from parley.infrastructure.events.dispatcher import event_handler

logger = logging.getLogger(__name__)


class VoiceStateEventHandler:
    """Re-checks voice presence when members join or leave voice channels."""

    def __init__(self, voice_presence: VoicePresenceService, guild_ids: list[str]) -> None:
        self._voice_presence = voice_presence
        self._guild_ids = set(guild_ids)

    @event_handler(EventType.VOICE_STATE)
    async def handle(self, event: Event) -> None:
        guild_id: str = event.payload["guild_id"]
        if guild_id not in self._guild_ids:
            return
        logger.debug("Voice state changed in guild %s", guild_id)
        self._voice_presence.handle_voice_state(guild_id)
