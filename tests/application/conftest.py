"""Shared fixtures for application layer tests."""

from collections.abc import Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from parley.config import ResponseConfig
from parley.domain.entities import (
    Attachment,
    Channel,
    ChannelKind,
    Message,
    Persona,
    User,
)
from parley.infrastructure.personas import PersonaLibrary

BOT_USER_ID = "99"

MessageFactory = Callable[..., Message]


@pytest.fixture
def bot_user_id() -> str:
    return BOT_USER_ID


@pytest.fixture
def guild_channel() -> Channel:
    return Channel(id="100", name="general", guild_id="900")


@pytest.fixture
def dm_channel() -> Channel:
    return Channel(id="7", name="", kind=ChannelKind.DM)


@pytest.fixture
def alice() -> User:
    return User(id="1", name="alice")


@pytest.fixture
def make_message(guild_channel: Channel, alice: User) -> MessageFactory:
    """Factory for incoming messages (guild channel, from alice by default)."""

    def factory(
        text: str = "hello",
        *,
        id: str = "555",
        channel: Channel | None = None,
        user: User | None = None,
        mentions: list[User] | None = None,
        attachments: list[Attachment] | None = None,
        reference_id: str | None = None,
    ) -> Message:
        return Message(
            id=id,
            channel=channel or guild_channel,
            user=user or alice,
            text=text,
            timestamp=datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
            mentions=mentions or [],
            attachments=attachments or [],
            reference_id=reference_id,
        )

    return factory


@pytest.fixture
def persona() -> Persona:
    return Persona(
        key="doji",
        name="Doji",
        personality="You are Doji.",
        character_info="Doji likes games.",
        response_style="Keep it short.",
        confirmation="Doji is back!",
    )


@pytest.fixture
def personas(persona: Persona) -> MagicMock:
    """Mock PersonaLibrary that always returns the same persona."""
    mock = MagicMock(spec=PersonaLibrary)
    mock.get.return_value = persona
    mock.default_key = "doji"
    return mock


@pytest.fixture
def messaging_service() -> AsyncMock:
    """Create mock messaging service."""
    mock = AsyncMock()
    mock.send_message.return_value = "1000"
    mock.fetch_message.return_value = None
    mock.fetch_recent_messages.return_value = []
    mock.resolve_text_channel.return_value = None
    return mock


@pytest.fixture
def generation_service() -> AsyncMock:
    """Create mock generation service."""
    mock = AsyncMock()
    mock.generate.return_value = "Hi alice!"
    mock.decide.return_value = True
    return mock


@pytest.fixture
def conversation_store() -> MagicMock:
    mock = MagicMock()
    mock.history.return_value = []
    mock.is_active.return_value = False
    return mock


@pytest.fixture
def persona_selection() -> MagicMock:
    mock = MagicMock()
    mock.get.return_value = "doji"
    mock.save = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def opinion_store() -> MagicMock:
    mock = MagicMock()
    mock.get_opinion.return_value = None
    return mock


@pytest.fixture
def response_config() -> ResponseConfig:
    return ResponseConfig(
        cooldown_seconds=3.0,
        read_delay_seconds=2.0,
        typing_seconds=3.0,
        proactive_every_n=3,
        proactive_chance=0.15,
        proactive_guild_ids=["900"],
        reaction_chance=0.05,
        reaction_response_chance=0.2,
        reaction_emojis=["👍", "🎉"],
        mirror_responses=True,
    )


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Sleep replacement that returns immediately and records delays."""
    return AsyncMock(return_value=None)
