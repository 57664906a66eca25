"""Message entity."""

from dataclasses import dataclass, field
from datetime import datetime

from parley.domain.entities.channel import Channel
from parley.domain.entities.user import User


@dataclass(frozen=True)
class Attachment:
    """File attached to a message.

    Attributes:
        filename: Original file name.
        url: Download URL.
        content_type: MIME type reported by the platform, if any.
    """

    filename: str
    url: str
    content_type: str | None = None


@dataclass(frozen=True)
class Message:
    """Message entity.

    Attributes:
        id: Platform-specific message ID.
        channel: Channel where the message was posted.
        user: User who sent the message.
        text: Message content.
        timestamp: When the message was sent.
        mentions: Users mentioned in the message, in order of appearance.
        attachments: Files attached to the message.
        reference_id: ID of the message this one replies to.
    """

    id: str
    channel: Channel
    user: User
    text: str
    timestamp: datetime
    mentions: list[User] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    reference_id: str | None = None

    @property
    def context_id(self) -> str:
        """Conversation context: the partner for direct messages, else the channel."""
        if self.channel.is_dm:
            return self.user.id
        return self.channel.id

    def is_reply(self) -> bool:
        """Check if this message replies to another message."""
        return self.reference_id is not None

    def mentions_user(self, user_id: str) -> bool:
        """Check if a user is mentioned in this message.

        Args:
            user_id: The user ID to check.

        Returns:
            True if the user is mentioned.
        """
        return any(user.id == user_id for user in self.mentions)

    def first_mention_except(self, user_id: str) -> User | None:
        """Return the first mentioned user other than ``user_id``."""
        for user in self.mentions:
            if user.id != user_id:
                return user
        return None
