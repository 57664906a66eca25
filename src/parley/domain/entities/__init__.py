"""Domain entities."""

from parley.domain.entities.channel import Channel, ChannelKind
from parley.domain.entities.event import Event, EventType
from parley.domain.entities.generation import ChatMessage, ContentPart, Role
from parley.domain.entities.message import Attachment, Message
from parley.domain.entities.persona import Persona
from parley.domain.entities.reaction import Reaction
from parley.domain.entities.turn import Turn
from parley.domain.entities.user import User
from parley.domain.entities.voice import VoiceBuffer, VoiceState

__all__ = [
    "Attachment",
    "Channel",
    "ChannelKind",
    "ChatMessage",
    "ContentPart",
    "Event",
    "EventType",
    "Message",
    "Persona",
    "Reaction",
    "Role",
    "Turn",
    "User",
    "VoiceBuffer",
    "VoiceState",
]
