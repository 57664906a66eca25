"""Handler for REACTION events."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from parley.application.use_cases.deliver_response import DeliverResponseUseCase
from parley.application.use_cases.helpers import read_and_type, turns_to_messages
from parley.config import ResponseConfig
from parley.domain.entities import ChatMessage, Event, Reaction
from parley.domain.entities.event import EventType
from parley.domain.services import (
    ConversationStore,
    GenerationService,
    MessagingService,
    PersonaSelectionStore,
)
from parley.infrastructure.events.dispatcher import event_handler
from parley.infrastructure.llm.templates import render_prompt
from parley.infrastructure.personas import PersonaLibrary

logger = logging.getLogger(__name__)

ERROR_MESSAGE = (
    "Oops! I encountered an error trying to respond to that reaction. "
    "Please try again later."
)


class ReactionEventHandler:
    """Handler for REACTION events.

    Only reactions to the agent's own guild messages are considered. A
    fraction of them is offered to the model, which decides whether the
    reaction deserves a reply.
    """

    def __init__(
        self,
        messaging_service: MessagingService,
        generation_service: GenerationService,
        conversation_store: ConversationStore,
        persona_selection: PersonaSelectionStore,
        personas: PersonaLibrary,
        deliver_response: DeliverResponseUseCase,
        config: ResponseConfig,
        bot_user_id: str,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._messaging_service = messaging_service
        self._generation_service = generation_service
        self._conversation_store = conversation_store
        self._persona_selection = persona_selection
        self._personas = personas
        self._deliver_response = deliver_response
        self._config = config
        self._bot_user_id = bot_user_id
        self._rng = rng or random.Random()
        self._sleep = sleep

    @event_handler(EventType.REACTION)
    async def handle(self, event: Event) -> None:
        """Handle REACTION event.

        Processing flow:
        1. Ignore the agent's own reactions and reactions outside its guild messages
        2. Roll the response chance
        3. Ask the model whether to reply
        4. Read, type, generate and deliver

        Args:
            event: The REACTION event, payload {"reaction": Reaction}.
        """
        reaction: Reaction = event.payload["reaction"]
        message = reaction.message

        if reaction.user.id == self._bot_user_id:
            return
        if message.user.id != self._bot_user_id or message.channel.guild_id is None:
            return
        if self._rng.random() >= self._config.reaction_response_chance:
            return

        context_id = message.context_id
        channel_id = message.channel.id
        persona_key = self._persona_selection.get(context_id)
        persona = self._personas.get(persona_key)

        logger.info(
            "Reaction response chance triggered for %s (%s)", reaction.user.name, reaction.emoji
        )
        decision_context = [
            ChatMessage.model(message.text),
            ChatMessage.user(
                f"I (the user) reacted to your previous message with a {reaction.emoji} emoji."
            ),
        ]
        if not await self._generation_service.decide(
            decision_context, persona.system_instructions
        ):
            logger.info("Decided not to respond to %s's reaction", reaction.user.name)
            return

        history = turns_to_messages(
            self._conversation_store.history(context_id, channel_id, persona_key),
            self._bot_user_id,
        )
        history.append(
            ChatMessage.user(
                render_prompt("reaction_followup", content=message.text, emoji=reaction.emoji)
            )
        )

        try:
            reply = await read_and_type(
                self._messaging_service,
                channel_id,
                self._generation_service.generate(
                    history,
                    persona.system_instructions,
                    session_id=f"{context_id}-{persona_key}",
                ),
                read_delay=self._config.read_delay_seconds,
                typing_seconds=self._config.typing_seconds,
                sleep=self._sleep,
            )
        except Exception:
            logger.exception("Error while responding to a reaction in channel %s", channel_id)
            await self._messaging_service.send_message(channel_id, ERROR_MESSAGE)
            return

        await self._deliver_response.execute(
            text=reply,
            context_id=context_id,
            channel_id=channel_id,
            persona=persona_key,
            guild_id=message.channel.guild_id,
            react_to_message_id=message.id,
        )
