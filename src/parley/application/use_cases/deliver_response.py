"""Emission of generated replies."""

import logging
import random

from parley.config import ResponseConfig
from parley.domain.services import ConversationStore, MessagingService

logger = logging.getLogger(__name__)


class DeliverResponseUseCase:
    """Sends a reply and records it.

    Processing flow:
    1. Send the reply to the origin channel
    2. Mirror it to the guild's text channel (if enabled and different)
    3. React to the triggering message with a random emoji (sometimes)
    4. Append the reply to the conversation history
    """

    def __init__(
        self,
        messaging_service: MessagingService,
        conversation_store: ConversationStore,
        config: ResponseConfig,
        bot_user_id: str,
        rng: random.Random | None = None,
    ) -> None:
        self._messaging_service = messaging_service
        self._conversation_store = conversation_store
        self._config = config
        self._bot_user_id = bot_user_id
        self._rng = rng or random.Random()

    async def execute(
        self,
        *,
        text: str,
        context_id: str,
        channel_id: str,
        persona: str,
        guild_id: str | None = None,
        react_to_message_id: str | None = None,
    ) -> bool:
        """Deliver a reply.

        Args:
            text: Reply text.
            context_id: Conversation context ID.
            channel_id: Origin channel ID.
            persona: Active persona key.
            guild_id: Guild of the origin channel, None outside guilds.
            react_to_message_id: Message that may receive a reaction.

        Returns:
            True if the reply was sent to the origin channel.
        """
        if not text.strip():
            logger.info("Empty reply for channel %s, nothing sent", channel_id)
            return False

        sent_id = await self._messaging_service.send_message(channel_id, text)
        if sent_id is None:
            return False

        if self._config.mirror_responses and guild_id is not None:
            await self._mirror(guild_id, channel_id, text)

        if react_to_message_id is not None and self._config.reaction_emojis:
            if self._rng.random() < self._config.reaction_chance:
                emoji = self._rng.choice(self._config.reaction_emojis)
                await self._messaging_service.add_reaction(channel_id, react_to_message_id, emoji)
                logger.info("Reacted to message %s with %s", react_to_message_id, emoji)

        self._conversation_store.append(
            context_id, channel_id, persona, text, self._bot_user_id
        )
        logger.debug(
            "Reply added to history for context %s in channel %s with persona %s",
            context_id,
            channel_id,
            persona,
        )
        return True

    async def _mirror(self, guild_id: str, origin_channel_id: str, text: str) -> None:
        target = await self._messaging_service.resolve_text_channel(guild_id)
        if target is None or target == origin_channel_id:
            return
        await self._messaging_service.send_message(target, text)
