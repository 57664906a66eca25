"""Discord event adapter."""

import re

import discord

from parley.domain.entities import (
    Attachment,
    Channel,
    ChannelKind,
    Message,
    Reaction,
    User,
)


class DiscordEventAdapter:
    """Convert Discord objects to domain entities.

    This adapter translates discord.py models into platform-independent
    domain entities.
    """

    MENTION_PATTERN = re.compile(r"<@!?(\d+)>")

    def __init__(self, client: discord.Client) -> None:
        """Initialize the adapter.

        Args:
            client: Discord client, used to resolve mentioned users.
        """
        self._client = client

    def to_message(self, message: discord.Message) -> Message:
        """Convert a discord.Message to a Message entity."""
        reference_id = None
        if message.reference is not None and message.reference.message_id is not None:
            reference_id = str(message.reference.message_id)

        return Message(
            id=str(message.id),
            channel=self.to_channel(message.channel),
            user=self.to_user(message.author),
            text=message.content,
            timestamp=message.created_at,
            mentions=self.extract_mentions(message),
            attachments=[
                Attachment(
                    filename=attachment.filename,
                    url=attachment.url,
                    content_type=attachment.content_type,
                )
                for attachment in message.attachments
            ],
            reference_id=reference_id,
        )

    def to_reaction(
        self,
        reaction: discord.Reaction,
        user: discord.abc.User,
    ) -> Reaction:
        """Convert a reaction event to a Reaction entity."""
        emoji = reaction.emoji
        emoji_text = emoji if isinstance(emoji, str) else (emoji.name or str(emoji))
        return Reaction(
            emoji=emoji_text,
            user=self.to_user(user),
            message=self.to_message(reaction.message),
        )

    @staticmethod
    def to_user(user: discord.abc.User) -> User:
        return User(id=str(user.id), name=user.name, is_bot=user.bot)

    @staticmethod
    def to_channel(channel: discord.abc.Messageable) -> Channel:
        if isinstance(channel, discord.DMChannel):
            return Channel(id=str(channel.id), name="", kind=ChannelKind.DM)
        if isinstance(channel, discord.GroupChannel):
            return Channel(
                id=str(channel.id),
                name=channel.name or "",
                kind=ChannelKind.GROUP_DM,
            )
        guild = getattr(channel, "guild", None)
        return Channel(
            id=str(channel.id),
            name=getattr(channel, "name", "") or "",
            kind=ChannelKind.GUILD_TEXT,
            guild_id=str(guild.id) if guild is not None else None,
        )

    def extract_mentions(self, message: discord.Message) -> list[User]:
        """Mentioned users in the order they appear in the text.

        Args:
            message: Discord message.

        Returns:
            Users for every resolvable ``<@id>`` mention, without duplicates.
        """
        known = {str(user.id): user for user in message.mentions}
        mentions: list[User] = []
        seen: set[str] = set()
        for match in self.MENTION_PATTERN.finditer(message.content):
            user_id = match.group(1)
            if user_id in seen:
                continue
            seen.add(user_id)
            user = known.get(user_id) or self._client.get_user(int(user_id))
            if user is not None:
                mentions.append(self.to_user(user))
        return mentions
