"""Tests for Discord event handlers."""

from typing import Any
from unittest.mock import MagicMock, Mock

import pytest

from parley.domain.entities import EventType
from parley.presentation.discord_handlers import register_handlers


@pytest.fixture
def mock_event_adapter() -> Mock:
    """Create a mock DiscordEventAdapter."""
    mock = Mock()
    mock.to_message.return_value = "message-entity"
    mock.to_reaction.return_value = "reaction-entity"
    return mock


@pytest.fixture
def mock_dispatcher() -> Mock:
    return Mock()


@pytest.fixture
def registered_handlers(mock_event_adapter: Mock, mock_dispatcher: Mock) -> dict[str, Any]:
    """Register handlers on a fake client and capture them by name."""
    handlers: dict[str, Any] = {}

    def capture(func: Any) -> Any:
        handlers[func.__name__] = func
        return func

    client = Mock()
    client.event = capture
    register_handlers(client, mock_dispatcher, mock_event_adapter)
    return handlers


def dispatched_event(mock_dispatcher: Mock):
    return mock_dispatcher.dispatch_in_background.call_args.args[0]


class TestRegisterHandlers:
    def test_registers_all_events(self, registered_handlers: dict[str, Any]) -> None:
        assert set(registered_handlers) == {
            "on_ready",
            "on_message",
            "on_reaction_add",
            "on_voice_state_update",
        }


class TestOnMessage:
    async def test_dispatches_message_event(
        self,
        registered_handlers: dict[str, Any],
        mock_event_adapter: Mock,
        mock_dispatcher: Mock,
    ) -> None:
        message = MagicMock()

        await registered_handlers["on_message"](message)

        mock_event_adapter.to_message.assert_called_once_with(message)
        event = dispatched_event(mock_dispatcher)
        assert event.type == EventType.MESSAGE
        assert event.payload == {"message": "message-entity"}

    async def test_conversion_error_is_logged(
        self,
        registered_handlers: dict[str, Any],
        mock_event_adapter: Mock,
        mock_dispatcher: Mock,
    ) -> None:
        mock_event_adapter.to_message.side_effect = ValueError("bad message")

        await registered_handlers["on_message"](MagicMock())

        mock_dispatcher.dispatch_in_background.assert_not_called()


class TestOnReactionAdd:
    async def test_dispatches_reaction_event(
        self,
        registered_handlers: dict[str, Any],
        mock_event_adapter: Mock,
        mock_dispatcher: Mock,
    ) -> None:
        reaction, user = MagicMock(), MagicMock()

        await registered_handlers["on_reaction_add"](reaction, user)

        mock_event_adapter.to_reaction.assert_called_once_with(reaction, user)
        event = dispatched_event(mock_dispatcher)
        assert event.type == EventType.REACTION
        assert event.payload == {"reaction": "reaction-entity"}


class TestOnVoiceStateUpdate:
    async def test_channel_change_dispatched(
        self, registered_handlers: dict[str, Any], mock_dispatcher: Mock
    ) -> None:
        member = MagicMock()
        member.id = 1
        member.guild.id = 900
        before, after = MagicMock(), MagicMock()
        before.channel = None
        after.channel = MagicMock()

        await registered_handlers["on_voice_state_update"](member, before, after)

        event = dispatched_event(mock_dispatcher)
        assert event.type == EventType.VOICE_STATE
        assert event.payload == {"guild_id": "900", "member_id": "1"}

    async def test_mute_toggle_ignored(
        self, registered_handlers: dict[str, Any], mock_dispatcher: Mock
    ) -> None:
        channel = MagicMock()
        before, after = MagicMock(), MagicMock()
        before.channel = channel
        after.channel = channel

        await registered_handlers["on_voice_state_update"](MagicMock(), before, after)

        mock_dispatcher.dispatch_in_background.assert_not_called()
