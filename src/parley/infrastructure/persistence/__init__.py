"""Persistence infrastructure."""

from parley.infrastructure.persistence.conversation_store import JsonConversationStore
from parley.infrastructure.persistence.exceptions import PersistenceError
from parley.infrastructure.persistence.json_file import JsonBackedStore, JsonDocument
from parley.infrastructure.persistence.opinion_store import JsonOpinionStore
from parley.infrastructure.persistence.persona_selection import (
    JsonPersonaSelectionStore,
)

__all__ = [
    "JsonBackedStore",
    "JsonConversationStore",
    "JsonDocument",
    "JsonOpinionStore",
    "JsonPersonaSelectionStore",
    "PersistenceError",
]
