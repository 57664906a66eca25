"""Domain service protocols."""

from typing import Protocol

from parley.domain.entities import ChatMessage, Message, Turn


class MessagingService(Protocol):
    """Messaging abstraction (platform-independent).

    Implementations catch and log platform errors themselves; callers only
    see the documented return values.
    """

    async def send_message(self, channel_id: str, text: str) -> str | None:
        """Send a message to a channel.

        Args:
            channel_id: Target channel ID.
            text: Message content.

        Returns:
            ID of the sent message, or None if sending failed.
        """
        ...

    async def send_typing(self, channel_id: str) -> None:
        """Show the typing indicator in a channel."""
        ...

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        """React to a message with an emoji."""
        ...

    async def fetch_recent_messages(self, channel_id: str, limit: int) -> list[Message]:
        """Fetch the most recent messages of a channel.

        Returns:
            Messages in chronological order (oldest first).
        """
        ...

    async def fetch_message(self, channel_id: str, message_id: str) -> Message | None:
        """Fetch a single message, None if it cannot be fetched."""
        ...

    async def resolve_text_channel(self, guild_id: str) -> str | None:
        """Return the ID of the text channel used for guild-wide announcements."""
        ...


class GenerationService(Protocol):
    """Text generation abstraction."""

    async def generate(
        self,
        history: list[ChatMessage],
        system_instructions: str,
        session_id: str = "default-chat",
    ) -> str:
        """Generate a reply to the last message of ``history``.

        Never raises for service failures; a fixed apology is returned instead.
        """
        ...

    async def decide(
        self,
        recent_messages: list[ChatMessage],
        system_instructions: str,
    ) -> bool:
        """Decide whether to join a conversation. Failures mean False."""
        ...

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        speaker_id: str,
    ) -> str | None:
        """Transcribe an audio clip. Failures mean None."""
        ...


class ConversationStore(Protocol):
    """Bounded conversation history per (context, channel, persona)."""

    def append(
        self,
        context_id: str,
        channel_id: str,
        persona: str,
        content: str,
        author_id: str,
    ) -> None: ...

    def history(self, context_id: str, channel_id: str, persona: str) -> list[Turn]: ...

    def is_active(self, context_id: str, channel_id: str) -> bool: ...

    def clear_history(self, context_id: str, channel_id: str, persona: str) -> None: ...


class OpinionStore(Protocol):
    """Opinions the agent holds about users, per persona."""

    def record_opinion(self, subject_id: str, persona: str, text: str) -> None: ...

    def get_opinion(self, subject_id: str, persona: str) -> str | None: ...


class PersonaSelectionStore(Protocol):
    """Persona selected for each conversation context."""

    def get(self, context_id: str) -> str: ...

    def set(self, context_id: str, persona: str) -> None: ...

    async def save(self) -> bool:
        """Persist the selections. Returns False if a save was already running."""
        ...


class VoicePresenceService(Protocol):
    """Voice channel presence management."""

    def handle_voice_state(self, guild_id: str) -> None:
        """Re-evaluate presence after a member's voice state changed."""
        ...
