"""Helper functions for use cases."""

import asyncio
import base64
import logging
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from parley.domain.entities import Attachment, ChatMessage, ContentPart, Message, Turn
from parley.domain.services import MessagingService
from parley.infrastructure.http.downloader import DownloadError, FileDownloader

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_MESSAGE_PROMPT = "Hey! What's up?"
CONTINUE_PROMPT = "Continue the conversation naturally."


def turns_to_messages(turns: list[Turn], bot_user_id: str) -> list[ChatMessage]:
    """Convert stored turns to chat messages.

    Turns written by the agent become model messages, everything else is user.
    """
    return [
        ChatMessage.model(turn.content)
        if turn.author_id == bot_user_id
        else ChatMessage.user(turn.content)
        for turn in turns
    ]


def messages_to_chat(messages: list[Message], bot_user_id: str) -> list[ChatMessage]:
    """Convert fetched channel messages (oldest first) to chat messages."""
    return [
        ChatMessage.model(message.text)
        if message.user.id == bot_user_id
        else ChatMessage.user(message.text)
        for message in messages
    ]


def reply_excerpt(referenced: Message, limit: int = 200) -> str:
    """Describe the message being replied to.

    Args:
        referenced: The replied-to message.
        limit: Maximum number of characters of its content to include.

    Returns:
        Excerpt text, with "..." appended when truncated.
    """
    content = referenced.text[:limit]
    suffix = "..." if len(referenced.text) > limit else ""
    return (
        f"(In reply to {referenced.user.name} ({referenced.user.id}): "
        f'"{content}{suffix}")'
    )


def opinion_context(subject_name: str, subject_id: str, opinion: str) -> list[ChatMessage]:
    """Prior opinion about a user followed by the model's acknowledgment."""
    return [
        ChatMessage.user(
            f'My previous opinion about {subject_name} ({subject_id}) is: "{opinion}"'
        ),
        ChatMessage.model(f"Understood, considering my previous thoughts on {subject_name}."),
    ]


async def read_and_type(
    messaging: MessagingService,
    channel_id: str,
    work: Awaitable[T],
    *,
    read_delay: float,
    typing_seconds: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Simulate reading, then show typing while ``work`` runs.

    The result is returned once both ``work`` and the typing duration
    have completed.
    """
    await sleep(read_delay)
    await messaging.send_typing(channel_id)
    result, _ = await asyncio.gather(work, sleep(typing_seconds))
    return result


class AttachmentProcessor:
    """Turns message attachments into inline content parts.

    Files are downloaded to a scratch directory, read and removed again.
    Attachments with unsupported or unknown content types are skipped, as
    are attachments that fail to download.
    """

    def __init__(
        self,
        downloader: FileDownloader,
        scratch_dir: str | Path,
        supported_mime_types: list[str],
    ) -> None:
        self._downloader = downloader
        self._scratch_dir = Path(scratch_dir)
        self._supported = set(supported_mime_types)

    def is_supported(self, attachment: Attachment) -> bool:
        return attachment.content_type is not None and attachment.content_type in self._supported

    async def to_parts(self, attachments: list[Attachment]) -> list[ContentPart]:
        results = await asyncio.gather(*(self._to_part(a) for a in attachments))
        return [part for part in results if part is not None]

    async def _to_part(self, attachment: Attachment) -> ContentPart | None:
        if not self.is_supported(attachment):
            logger.info(
                "Unsupported attachment type %s, skipping %s",
                attachment.content_type or "unknown",
                attachment.filename,
            )
            return None

        assert attachment.content_type is not None
        # Unique name so concurrent messages with the same file name do not collide
        path = self._scratch_dir / f"{uuid.uuid4().hex}_{Path(attachment.filename).name}"
        try:
            await self._downloader.download(attachment.url, path)
            data = await asyncio.to_thread(path.read_bytes)
        except (DownloadError, OSError) as e:
            logger.error("Error processing attachment %s: %s", attachment.filename, e)
            return None
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Error cleaning up temp file %s: %s", path, e)

        logger.debug("Processed attachment %s (%s)", attachment.filename, attachment.content_type)
        return ContentPart.of_data(attachment.content_type, base64.b64encode(data).decode("ascii"))
