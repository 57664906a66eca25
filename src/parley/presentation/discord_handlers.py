"""Discord event handlers."""

import logging

import discord

from parley.domain.entities import Event
from parley.domain.entities.event import EventType
from parley.infrastructure.discord import DiscordEventAdapter
from parley.infrastructure.events import EventDispatcher

logger = logging.getLogger(__name__)


def register_handlers(
    client: discord.Client,
    dispatcher: EventDispatcher,
    event_adapter: DiscordEventAdapter,
) -> None:
    """Register Discord event handlers.

    Platform events are converted to domain entities and dispatched in
    background tasks, which are cancelled on shutdown.

    Args:
        client: Discord client.
        dispatcher: Dispatcher holding the application handlers.
        event_adapter: Adapter for converting events to entities.
    """

    @client.event
    async def on_ready() -> None:
        logger.info("Logged in as %s", client.user)

    @client.event
    async def on_message(message: discord.Message) -> None:
        """Handle message events."""
        try:
            entity = event_adapter.to_message(message)
        except Exception:
            logger.exception("Error converting message %s", message.id)
            return

        dispatcher.dispatch_in_background(
            Event(type=EventType.MESSAGE, payload={"message": entity})
        )

    @client.event
    async def on_reaction_add(reaction: discord.Reaction, user: discord.abc.User) -> None:
        """Handle reactions on cached messages."""
        try:
            entity = event_adapter.to_reaction(reaction, user)
        except Exception:
            logger.exception("Error converting reaction on message %s", reaction.message.id)
            return

        dispatcher.dispatch_in_background(
            Event(type=EventType.REACTION, payload={"reaction": entity})
        )

    @client.event
    async def on_voice_state_update(
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Handle members joining, leaving or moving between voice channels."""
        if before.channel == after.channel:
            return
        dispatcher.dispatch_in_background(
            Event(
                type=EventType.VOICE_STATE,
                payload={"guild_id": str(member.guild.id), "member_id": str(member.id)},
            )
        )
