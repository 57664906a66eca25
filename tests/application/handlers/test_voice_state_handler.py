"""Tests for VoiceStateEventHandler."""

from unittest.mock import MagicMock

from parley.application.handlers import VoiceStateEventHandler
from parley.domain.entities import Event, EventType


def voice_state_event(guild_id: str) -> Event:
    return Event(
        type=EventType.VOICE_STATE,
        payload={"guild_id": guild_id, "member_id": "1"},
    )


class TestVoiceStateEventHandler:
    async def test_configured_guild(self) -> None:
        presence = MagicMock()
        handler = VoiceStateEventHandler(presence, ["900"])

        await handler.handle(voice_state_event("900"))

        presence.handle_voice_state.assert_called_once_with("900")

    async def test_other_guild_ignored(self) -> None:
        presence = MagicMock()
        handler = VoiceStateEventHandler(presence, ["900"])

        await handler.handle(voice_state_event("901"))

        presence.handle_voice_state.assert_not_called()
