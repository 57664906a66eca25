"""Use cases."""

from parley.application.use_cases.deliver_response import DeliverResponseUseCase
from parley.application.use_cases.helpers import AttachmentProcessor
from parley.application.use_cases.voice_response import VoiceResponseUseCase

__all__ = [
    "AttachmentProcessor",
    "DeliverResponseUseCase",
    "VoiceResponseUseCase",
]
