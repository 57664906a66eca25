"""Discord messaging service."""

import logging

import discord

from parley.domain.entities import Message
from parley.infrastructure.discord.event_adapter import DiscordEventAdapter

logger = logging.getLogger(__name__)

# Discord rejects messages longer than this
MAX_MESSAGE_LENGTH = 2000


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text into chunks Discord accepts, preferring line breaks."""
    chunks: list[str] = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks


class DiscordMessagingService:
    """Discord implementation of MessagingService.

    Platform errors are logged here and never propagate to handlers.
    """

    def __init__(
        self,
        client: discord.Client,
        adapter: DiscordEventAdapter,
        mirror_channel_ids: dict[str, str] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            client: Discord client instance.
            adapter: Converter for fetched messages.
            mirror_channel_ids: Guild ID -> text channel ID overrides for
                guild-wide announcements.
        """
        self._client = client
        self._adapter = adapter
        self._mirror_channel_ids = mirror_channel_ids or {}

    async def _get_channel(self, channel_id: str):
        channel = self._client.get_channel(int(channel_id))
        if channel is not None:
            return channel
        try:
            return await self._client.fetch_channel(int(channel_id))
        except discord.HTTPException as e:
            logger.warning("Channel %s is not accessible: %s", channel_id, e)
            return None

    async def send_message(self, channel_id: str, text: str) -> str | None:
        """Send a message, split into several when it is too long.

        Returns:
            ID of the last sent message, or None if sending failed.
        """
        channel = await self._get_channel(channel_id)
        if channel is None:
            return None

        sent_id: str | None = None
        try:
            for chunk in split_message(text):
                sent = await channel.send(chunk)
                sent_id = str(sent.id)
        except discord.HTTPException as e:
            logger.error("Failed to send message to channel %s: %s", channel_id, e)
            return None
        return sent_id

    async def send_typing(self, channel_id: str) -> None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return
        try:
            await channel.typing()
        except discord.HTTPException as e:
            logger.warning("Could not send typing indicator in %s: %s", channel_id, e)

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return
        try:
            if hasattr(channel, "get_partial_message"):
                message = channel.get_partial_message(int(message_id))
            else:
                message = await channel.fetch_message(int(message_id))
            await message.add_reaction(emoji)
        except discord.HTTPException as e:
            logger.error("Failed to react to %s with %s: %s", message_id, emoji, e)

    async def fetch_recent_messages(self, channel_id: str, limit: int) -> list[Message]:
        """Fetch recent messages, oldest first."""
        channel = await self._get_channel(channel_id)
        if channel is None:
            return []
        try:
            messages = [m async for m in channel.history(limit=limit)]
        except discord.HTTPException as e:
            logger.warning("Failed to fetch history of %s: %s", channel_id, e)
            return []
        # history() returns newest first
        return [self._adapter.to_message(m) for m in reversed(messages)]

    async def fetch_message(self, channel_id: str, message_id: str) -> Message | None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return None
        try:
            message = await channel.fetch_message(int(message_id))
        except discord.HTTPException as e:
            logger.warning("Failed to fetch message %s: %s", message_id, e)
            return None
        return self._adapter.to_message(message)

    async def resolve_text_channel(self, guild_id: str) -> str | None:
        """Text channel for guild-wide messages.

        Uses the configured channel for the guild, else the first text
        channel the agent can write to.
        """
        configured = self._mirror_channel_ids.get(guild_id)
        if configured is not None:
            return configured

        guild = self._client.get_guild(int(guild_id))
        if guild is None:
            logger.warning("Guild %s not found", guild_id)
            return None
        for channel in guild.text_channels:
            if channel.permissions_for(guild.me).send_messages:
                return str(channel.id)
        logger.warning("No writable text channel in guild %s", guild_id)
        return None
