"""Discord client."""

import logging

import discord

logger = logging.getLogger(__name__)


def create_intents() -> discord.Intents:
    """Intents needed to read messages, reactions and voice activity."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True
    intents.voice_states = True
    intents.reactions = True
    intents.dm_messages = True
    return intents


class ParleyClient(discord.Client):
    """discord.Client with the intents parley needs.

    Event callbacks are attached by the presentation layer.
    """

    def __init__(self, **options) -> None:
        super().__init__(intents=create_intents(), **options)

    @property
    def user_id(self) -> str:
        """The agent's own user ID (available after login)."""
        if self.user is None:
            raise RuntimeError("Client is not logged in")
        return str(self.user.id)

    @property
    def is_connected(self) -> bool:
        return self.is_ready() and not self.is_closed()
