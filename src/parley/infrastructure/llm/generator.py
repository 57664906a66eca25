"""LiteLLM-backed generation service."""

import base64
import logging
from collections import OrderedDict
from typing import Any

from parley.domain.entities import ChatMessage, ContentPart, Role
from parley.infrastructure.llm.client import LLMClient
from parley.infrastructure.llm.exceptions import LLMError
from parley.infrastructure.llm.templates import render_prompt

logger = logging.getLogger(__name__)

APOLOGY = (
    "I apologize, but I encountered an error while trying to process that. "
    "The AI model is currently unavailable or overloaded. Please try again later."
)
ACKNOWLEDGMENT = "Understood."
DEFAULT_SESSION_ID = "default-chat"


def to_litellm_message(message: ChatMessage) -> dict[str, Any]:
    """Convert a ChatMessage into the OpenAI message format LiteLLM expects.

    Text-only messages become a plain string. Inline images become
    ``image_url`` data URIs and any other inline media a ``file`` part.
    """
    role = "assistant" if message.role is Role.MODEL else "user"
    if all(part.is_text for part in message.parts):
        return {"role": role, "content": "\n".join(p.text or "" for p in message.parts)}

    content: list[dict[str, Any]] = []
    for part in message.parts:
        if part.is_text:
            content.append({"type": "text", "text": part.text})
            continue
        data_uri = f"data:{part.mime_type};base64,{part.data}"
        if (part.mime_type or "").startswith("image/"):
            content.append({"type": "image_url", "image_url": {"url": data_uri}})
        else:
            content.append({"type": "file", "file": {"file_data": data_uri}})
    return {"role": role, "content": content}


def _seed(system_instructions: str) -> list[dict[str, Any]]:
    return [
        {"role": "user", "content": system_instructions},
        {"role": "assistant", "content": ACKNOWLEDGMENT},
    ]


class LiteLLMGenerationClient:
    """GenerationService implementation on top of LLMClient.

    ``generate`` keeps one chat session per session ID. A session is seeded
    on first use with the system instructions, an acknowledgment and the
    prior history, and grows with every successful exchange afterwards.
    ``decide`` and ``transcribe`` always use a fresh request.
    """

    def __init__(
        self,
        client: LLMClient,
        *,
        decision_max_tokens: int = 50,
        max_sessions: int | None = None,
        debug_llm_messages: bool = False,
    ) -> None:
        """Initialize the generator.

        Args:
            client: LLMClient instance.
            decision_max_tokens: Output token cap for decide.
            max_sessions: Evict the least recently used session beyond this
                many. None keeps every session for the process lifetime.
            debug_llm_messages: If True, log LLM messages at INFO level.
        """
        self._client = client
        self._decision_max_tokens = decision_max_tokens
        self._max_sessions = max_sessions
        self._debug_llm_messages = debug_llm_messages
        self._sessions: OrderedDict[str, list[dict[str, Any]]] = OrderedDict()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def generate(
        self,
        history: list[ChatMessage],
        system_instructions: str,
        session_id: str = DEFAULT_SESSION_ID,
    ) -> str:
        """Generate a reply to the last message of ``history``.

        Args:
            history: Conversation so far; the last item is the message to answer.
            system_instructions: Instructions used to seed a new session.
            session_id: Session to continue.

        Returns:
            Generated text, or the apology string when generation failed.
        """
        if not history:
            raise ValueError("history must contain at least the current message")

        session = self._get_or_create_session(
            session_id, system_instructions, history[:-1]
        )
        current = to_litellm_message(history[-1])
        messages = [*session, current]

        if self._should_log():
            self._log_messages(messages)

        try:
            response = await self._client.complete(messages)
        except LLMError as e:
            logger.error("Generation failed for session %s: %s", session_id, e)
            return APOLOGY

        if not response:
            logger.warning("Empty generation result for session %s", session_id)
            return APOLOGY

        if self._should_log():
            self._log_response(response)

        session.append(current)
        session.append({"role": "assistant", "content": response})
        return response

    async def decide(
        self,
        recent_messages: list[ChatMessage],
        system_instructions: str,
    ) -> bool:
        """Ask whether the agent should join a conversation.

        Returns:
            True if the reply contains "yes". Any failure means False.
        """
        messages = [
            *_seed(system_instructions),
            *(to_litellm_message(m) for m in recent_messages),
            {"role": "user", "content": render_prompt("decision_request")},
        ]

        if self._should_log():
            self._log_messages(messages)

        try:
            response = await self._client.complete(
                messages, max_tokens=self._decision_max_tokens
            )
        except LLMError as e:
            logger.error("Decision failed, defaulting to no: %s", e)
            return False

        if self._should_log():
            self._log_response(response)

        return "yes" in response.lower().strip()

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        speaker_id: str,
    ) -> str | None:
        """Transcribe speech in an audio clip.

        Args:
            audio: Encoded audio bytes.
            mime_type: Container type of ``audio``.
            speaker_id: Platform user ID of the speaker.

        Returns:
            Raw transcription text, or None when the request failed.
        """
        request = ChatMessage(
            role=Role.USER,
            parts=[
                ContentPart.of_text(
                    render_prompt("transcription_request", speaker_id=speaker_id)
                ),
                ContentPart.of_data(mime_type, base64.b64encode(audio).decode("ascii")),
            ],
        )
        messages = [
            *_seed(render_prompt("transcription_system")),
            to_litellm_message(request),
        ]

        try:
            response = await self._client.complete(messages)
        except LLMError as e:
            logger.error("Transcription failed for speaker %s: %s", speaker_id, e)
            return None

        logger.info("Transcription for speaker %s: %s", speaker_id, response)
        return response or None

    def _get_or_create_session(
        self,
        session_id: str,
        system_instructions: str,
        prior: list[ChatMessage],
    ) -> list[dict[str, Any]]:
        session = self._sessions.get(session_id)
        if session is not None:
            logger.debug("Using existing chat session: %s", session_id)
            self._sessions.move_to_end(session_id)
            return session

        logger.info("Starting new chat session: %s", session_id)
        session = [*_seed(system_instructions), *(to_litellm_message(m) for m in prior)]
        self._sessions[session_id] = session
        if self._max_sessions is not None:
            while len(self._sessions) > self._max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted chat session: %s", evicted)
        return session

    def _should_log(self) -> bool:
        """Check if logging should occur."""
        return self._debug_llm_messages or logger.isEnabledFor(logging.DEBUG)

    def _log_messages(self, messages: list[dict[str, Any]]) -> None:
        """Log LLM request messages."""
        log_func = logger.info if self._debug_llm_messages else logger.debug
        log_func("=== LLM Request Messages ===")
        for i, msg in enumerate(messages):
            role = msg.get("role", "unknown")
            content = msg.get("content", "")
            if isinstance(content, list):
                content = ", ".join(part.get("type", "?") for part in content)
            log_func("[%d] role=%s", i, role)
            log_func("    content: %s", content)
        log_func("=== End of Messages ===")

    def _log_response(self, response: str) -> None:
        """Log LLM response."""
        log_func = logger.info if self._debug_llm_messages else logger.debug
        log_func("=== LLM Response ===")
        log_func("response: %s", response)
        log_func("=== End of Response ===")
