"""Handler for MESSAGE events.

Decides whether to respond to an incoming message and, if so, builds the
generation context, generates a reply in the active persona and delivers it.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from parley.application.handlers.commands import CommandHandler
from parley.application.use_cases.deliver_response import DeliverResponseUseCase
from parley.application.use_cases.helpers import (
    CONTINUE_PROMPT,
    EMPTY_MESSAGE_PROMPT,
    AttachmentProcessor,
    messages_to_chat,
    opinion_context,
    read_and_type,
    reply_excerpt,
    turns_to_messages,
)
from parley.config import ResponseConfig
from parley.domain.entities import (
    ChatMessage,
    ContentPart,
    Event,
    Message,
    Role,
    Turn,
    User,
)
from parley.domain.entities.event import EventType
from parley.domain.services import (
    ConversationStore,
    GenerationService,
    MessagingService,
    OpinionStore,
    PersonaSelectionStore,
    extract_opinion,
)
from parley.infrastructure.events.dispatcher import event_handler
from parley.infrastructure.llm.templates import render_prompt
from parley.infrastructure.personas import PersonaLibrary

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Oops! I encountered an error trying to respond. Please try again later."


@dataclass(frozen=True)
class ResponseDecision:
    """Why a message is answered and what text goes to the model.

    Attributes:
        reason: "dm", "mention", "active" or "proactive".
        text: Text part of the current message (may be empty).
        history_text: Text recorded in the conversation history (may be empty).
    """

    reason: str
    text: str
    history_text: str


class MessageEventHandler:
    """Handler for MESSAGE events.

    Respond decision precedence:
    1. Commands (handled and never answered)
    2. Direct messages
    3. Messages mentioning the agent
    4. Messages in a channel with an active conversation window
    5. Proactive join in eligible channels, decided by the model
    """

    def __init__(
        self,
        messaging_service: MessagingService,
        generation_service: GenerationService,
        conversation_store: ConversationStore,
        opinion_store: OpinionStore,
        persona_selection: PersonaSelectionStore,
        personas: PersonaLibrary,
        commands: CommandHandler,
        attachments: AttachmentProcessor,
        deliver_response: DeliverResponseUseCase,
        config: ResponseConfig,
        bot_user_id: str,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the handler.

        Args:
            messaging_service: Service for platform actions.
            generation_service: Service for generating replies and decisions.
            conversation_store: Conversation history and active windows.
            opinion_store: Opinions about users.
            persona_selection: Persona selected per conversation context.
            personas: Loaded personas.
            commands: Command handler, consulted first.
            attachments: Converts attachments to inline parts.
            deliver_response: Sends and records replies.
            config: Response settings.
            bot_user_id: The agent's own user ID.
            rng: Random source for the proactive join chance.
            sleep: Sleep function for the read and typing delays.
            clock: Monotonic clock for the per-author cooldown.
        """
        self._messaging_service = messaging_service
        self._generation_service = generation_service
        self._conversation_store = conversation_store
        self._opinion_store = opinion_store
        self._persona_selection = persona_selection
        self._personas = personas
        self._commands = commands
        self._attachments = attachments
        self._deliver_response = deliver_response
        self._config = config
        self._bot_user_id = bot_user_id
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._last_response_at: dict[str, float] = {}
        self._channel_message_counts: dict[str, int] = {}

    @event_handler(EventType.MESSAGE)
    async def handle(self, event: Event) -> None:
        """Handle MESSAGE event.

        Args:
            event: The MESSAGE event, payload {"message": Message}.
        """
        message: Message = event.payload["message"]
        if message.user.id == self._bot_user_id:
            return

        if await self._commands.handle(message):
            return

        context_id = message.context_id
        channel_id = message.channel.id
        persona = self._persona_selection.get(context_id)

        decision = await self._decide(message, context_id, persona)
        if decision is None:
            return

        prior_turns = self._conversation_store.history(context_id, channel_id, persona)
        # Empty text (bare mention, attachment-only DM) is recorded too
        self._conversation_store.append(
            context_id, channel_id, persona, decision.history_text, message.user.id
        )

        if self._in_cooldown(message.user.id):
            logger.info("Message from %s ignored due to cooldown", message.user.name)
            return

        logger.info(
            "Responding to %s in channel %s (reason=%s, persona=%s)",
            message.user.name,
            channel_id,
            decision.reason,
            persona,
        )
        try:
            reply = await read_and_type(
                self._messaging_service,
                channel_id,
                self._generate_reply(message, decision.text, prior_turns, persona),
                read_delay=self._config.read_delay_seconds,
                typing_seconds=self._config.typing_seconds,
                sleep=self._sleep,
            )
        except Exception:
            logger.exception("Error while generating a reply in channel %s", channel_id)
            await self._messaging_service.send_message(channel_id, ERROR_MESSAGE)
            return

        if reply is None:
            logger.info("No usable content in message %s, nothing sent", message.id)
            return

        await self._deliver_response.execute(
            text=reply,
            context_id=context_id,
            channel_id=channel_id,
            persona=persona,
            guild_id=message.channel.guild_id,
            react_to_message_id=message.id,
        )

    async def _decide(
        self, message: Message, context_id: str, persona: str
    ) -> ResponseDecision | None:
        if message.channel.is_dm:
            text = message.text.strip()
            if not text and not message.attachments:
                text = EMPTY_MESSAGE_PROMPT
            return ResponseDecision("dm", text, message.text)

        if message.mentions_user(self._bot_user_id):
            cleaned = self._strip_own_mention(message.text)
            text = cleaned
            if not cleaned and not message.attachments:
                text = EMPTY_MESSAGE_PROMPT
            return ResponseDecision("mention", text, cleaned)

        if self._conversation_store.is_active(context_id, message.channel.id):
            return ResponseDecision("active", message.text.strip(), message.text)

        if await self._should_join(message, persona):
            return ResponseDecision("proactive", message.text.strip(), message.text)

        return None

    def _strip_own_mention(self, text: str) -> str:
        for mention in (f"<@{self._bot_user_id}>", f"<@!{self._bot_user_id}>"):
            text = text.replace(mention, "")
        return text.strip()

    def _proactive_eligible(self, message: Message) -> bool:
        if message.channel.is_group_dm:
            return True
        guild_id = message.channel.guild_id
        return guild_id is not None and guild_id in self._config.proactive_guild_ids

    async def _should_join(self, message: Message, persona: str) -> bool:
        channel_id = message.channel.id
        count = self._channel_message_counts.get(channel_id, 0) + 1
        self._channel_message_counts[channel_id] = count

        if not self._proactive_eligible(message):
            return False
        if count % self._config.proactive_every_n != 0:
            return False
        if self._rng.random() >= self._config.proactive_chance:
            return False

        logger.info("Proactive join chance triggered in channel %s, asking the model", channel_id)
        recent = await self._messaging_service.fetch_recent_messages(
            channel_id, self._config.proactive_history_limit
        )
        join = await self._generation_service.decide(
            messages_to_chat(recent, self._bot_user_id),
            self._personas.get(persona).system_instructions,
        )
        logger.info("Proactive join decision for channel %s: %s", channel_id, join)
        return join

    def _in_cooldown(self, author_id: str) -> bool:
        now = self._clock()
        last = self._last_response_at.get(author_id)
        if last is not None and now - last < self._config.cooldown_seconds:
            return True
        self._last_response_at[author_id] = now
        return False

    async def _generate_reply(
        self,
        message: Message,
        text: str,
        prior_turns: list[Turn],
        persona_key: str,
    ) -> str | None:
        """Build the generation context and generate a reply.

        Context order: prior opinion about the mentioned user, conversation
        history, replied-to excerpt, current message parts.

        Returns:
            Visible reply text, or None when the message has nothing to send.
        """
        parts: list[ContentPart] = []
        if text:
            parts.append(ContentPart.of_text(text))
        parts.extend(await self._attachments.to_parts(message.attachments))
        if not parts:
            return None

        persona = self._personas.get(persona_key)
        subject = message.first_mention_except(self._bot_user_id)

        history: list[ChatMessage] = []
        if subject is not None:
            opinion = self._opinion_store.get_opinion(subject.id, persona_key)
            if opinion:
                history.extend(opinion_context(subject.name, subject.id, opinion))

        history.extend(turns_to_messages(prior_turns, self._bot_user_id))

        excerpt = await self._reply_excerpt(message)
        if excerpt is not None:
            history.append(ChatMessage.user(excerpt))

        history.append(ChatMessage(role=Role.USER, parts=parts))

        prompt = (
            render_prompt("opinion_request", subject=subject)
            if subject is not None
            else CONTINUE_PROMPT
        )
        reply = await self._generation_service.generate(
            history,
            f"{persona.system_instructions}\n{prompt}",
            session_id=f"{message.context_id}-{persona_key}",
        )

        if subject is not None:
            reply = self._remember_opinion(reply, subject, persona_key)
        return reply

    async def _reply_excerpt(self, message: Message) -> str | None:
        if message.reference_id is None:
            return None
        referenced = await self._messaging_service.fetch_message(
            message.channel.id, message.reference_id
        )
        if referenced is None or not referenced.text:
            return None
        return reply_excerpt(referenced, self._config.reply_excerpt_chars)

    def _remember_opinion(self, reply: str, subject: User, persona_key: str) -> str:
        visible, opinion = extract_opinion(reply, subject.name)
        if opinion is None:
            return reply
        self._opinion_store.record_opinion(subject.id, persona_key, opinion)
        logger.info("Stored new opinion of %s for persona %s", subject.name, persona_key)
        return visible
