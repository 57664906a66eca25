"""Chat commands.

Commands start with the configured prefix and are matched
case-insensitively. They are handled before any respond decision.
"""

import logging
import random

from parley.config import CommandsConfig
from parley.domain.entities import Message
from parley.domain.exceptions import UnknownPersonaError
from parley.domain.services import (
    ConversationStore,
    MessagingService,
    PersonaSelectionStore,
)
from parley.infrastructure.personas import PersonaLibrary

logger = logging.getLogger(__name__)

FIXED_RESPONSE_FAILED = "I couldn't send the {name} video right now. Please try again later."


class CommandHandler:
    """Handles the persona switch command and fixed-response commands."""

    def __init__(
        self,
        messaging_service: MessagingService,
        personas: PersonaLibrary,
        persona_selection: PersonaSelectionStore,
        conversation_store: ConversationStore,
        config: CommandsConfig,
        rng: random.Random | None = None,
    ) -> None:
        self._messaging_service = messaging_service
        self._personas = personas
        self._persona_selection = persona_selection
        self._conversation_store = conversation_store
        self._config = config
        self._rng = rng or random.Random()
        self._fixed_responses = {
            name.lower(): texts for name, texts in config.fixed_responses.items()
        }

    def usage(self) -> str:
        names = "|".join(self._personas.display_names())
        return (
            "Please specify a personality. Usage: "
            f"`{self._config.prefix}{self._config.persona_command} [{names}]`"
        )

    async def handle(self, message: Message) -> bool:
        """Run the command contained in a message, if any.

        Args:
            message: Incoming message.

        Returns:
            True if the message was a command (and must not be processed further).
        """
        text = message.text.strip()
        prefix = self._config.prefix
        if not text.lower().startswith(prefix.lower()):
            return False

        words = text.split()
        name = words[0][len(prefix):].lower()

        if name == self._config.persona_command.lower():
            await self._switch_persona(message, words[1:])
            return True

        if name in self._fixed_responses and len(words) == 1:
            await self._send_fixed_response(message, name)
            return True

        return False

    async def _switch_persona(self, message: Message, args: list[str]) -> None:
        channel_id = message.channel.id
        if not args:
            await self._messaging_service.send_message(channel_id, self.usage())
            return

        try:
            persona = self._personas.resolve(args[0])
        except UnknownPersonaError as e:
            await self._messaging_service.send_message(
                channel_id,
                f'Personality "{args[0]}" not found. '
                f"Available personalities: {', '.join(e.available)}.",
            )
            return

        context_id = message.context_id
        self._persona_selection.set(context_id, persona)
        # Fresh start for the selected persona in this context
        self._conversation_store.clear_history(context_id, channel_id, persona)
        await self._persona_selection.save()
        logger.info(
            "Persona for context %s set to %s, history cleared", context_id, persona
        )

        confirmation = self._personas.confirmation(persona)
        if confirmation:
            await self._messaging_service.send_message(channel_id, confirmation)

    async def _send_fixed_response(self, message: Message, name: str) -> None:
        texts = self._fixed_responses[name]
        if not texts:
            logger.warning("Fixed-response command %s has no responses configured", name)
            return

        sent = await self._messaging_service.send_message(
            message.channel.id, self._rng.choice(texts)
        )
        if sent is None:
            await self._messaging_service.send_message(
                message.channel.id,
                FIXED_RESPONSE_FAILED.format(name=name.capitalize()),
            )
