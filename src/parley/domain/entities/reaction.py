"""Reaction entity."""

from dataclasses import dataclass

from parley.domain.entities.message import Message
from parley.domain.entities.user import User


@dataclass(frozen=True)
class Reaction:
    """An emoji reaction added to a message.

    Attributes:
        emoji: Emoji as text (unicode or custom emoji markup).
        user: User who reacted.
        message: Message that received the reaction.
    """

    emoji: str
    user: User
    message: Message
