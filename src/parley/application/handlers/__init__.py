"""Event handlers package."""

from parley.application.handlers.commands import CommandHandler
from parley.application.handlers.message_handler import MessageEventHandler
from parley.application.handlers.reaction_handler import ReactionEventHandler
from parley.application.handlers.voice_state_handler import VoiceStateEventHandler

__all__ = [
    "CommandHandler",
    "MessageEventHandler",
    "ReactionEventHandler",
    "VoiceStateEventHandler",
]
