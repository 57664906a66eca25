"""Replies to speech heard in voice channels."""

import logging
from typing import Protocol

from parley.domain.entities import ChatMessage
from parley.domain.services import (
    GenerationService,
    MessagingService,
    PersonaSelectionStore,
)
from parley.infrastructure.personas import PersonaLibrary

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    async def transcribe(self, pcm: bytes, speaker_id: str) -> str | None: ...


class VoiceResponseUseCase:
    """Transcribes a speech batch and answers in the guild's text channel."""

    def __init__(
        self,
        transcriber: Transcriber,
        generation_service: GenerationService,
        messaging_service: MessagingService,
        persona_selection: PersonaSelectionStore,
        personas: PersonaLibrary,
    ) -> None:
        self._transcriber = transcriber
        self._generation_service = generation_service
        self._messaging_service = messaging_service
        self._persona_selection = persona_selection
        self._personas = personas

    async def execute(self, guild_id: str, speaker_id: str, pcm: bytes) -> None:
        """Handle one accepted speech batch.

        Args:
            guild_id: Guild whose voice channel the audio came from.
            speaker_id: Platform user ID of the speaker.
            pcm: Decoded audio.
        """
        transcript = await self._transcriber.transcribe(pcm, speaker_id)
        if transcript is None:
            return
        logger.info("Speaker %s in guild %s said: %s", speaker_id, guild_id, transcript)

        persona_key = self._persona_selection.get(guild_id)
        persona = self._personas.get(persona_key)
        reply = await self._generation_service.generate(
            [ChatMessage.user(f'User in VC said: "{transcript}"')],
            persona.system_instructions,
            session_id=f"voice-{guild_id}-{persona_key}",
        )

        channel_id = await self._messaging_service.resolve_text_channel(guild_id)
        if channel_id is None:
            logger.warning("No text channel for voice reply in guild %s", guild_id)
            return
        await self._messaging_service.send_message(channel_id, reply)
