"""JSON 実装の OpinionStore"""

import logging
from typing import Any

from parley.infrastructure.persistence.json_file import JsonBackedStore, JsonDocument

logger = logging.getLogger(__name__)


class JsonOpinionStore(JsonBackedStore):
    """ユーザーに対する意見を subject -> persona -> text で保持するストア

    会話履歴とは別ファイルに保存し、履歴を消しても残る。
    """

    def __init__(self, document: JsonDocument) -> None:
        super().__init__(document)
        self._opinions: dict[str, dict[str, str]] = {}

    def load(self) -> None:
        data = self._document.load()
        self._opinions = {
            str(subject_id): {str(p): str(text) for p, text in personas.items()}
            for subject_id, personas in data.items()
            if isinstance(personas, dict)
        }
        logger.info("Loaded opinions for %d users", len(self._opinions))

    def _serialize(self) -> dict[str, Any]:
        return {subject_id: dict(personas) for subject_id, personas in self._opinions.items()}

    def record_opinion(self, subject_id: str, persona: str, text: str) -> None:
        self._opinions.setdefault(subject_id, {})[persona] = text
        logger.info("Stored opinion of persona %s about user %s", persona, subject_id)
        self.request_save()

    def get_opinion(self, subject_id: str, persona: str) -> str | None:
        return self._opinions.get(subject_id, {}).get(persona) or None
