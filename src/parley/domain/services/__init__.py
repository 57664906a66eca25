"""Domain services."""

from parley.domain.services.opinion import OPINION_MARKER, extract_opinion
from parley.domain.services.protocols import (
    ConversationStore,
    GenerationService,
    MessagingService,
    OpinionStore,
    PersonaSelectionStore,
    VoicePresenceService,
)

__all__ = [
    "OPINION_MARKER",
    "ConversationStore",
    "GenerationService",
    "MessagingService",
    "OpinionStore",
    "PersonaSelectionStore",
    "VoicePresenceService",
    "extract_opinion",
]
