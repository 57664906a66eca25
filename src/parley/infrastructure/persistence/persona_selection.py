"""JSON 実装の PersonaSelectionStore"""

import logging
from typing import Any

from parley.infrastructure.persistence.json_file import JsonBackedStore, JsonDocument

logger = logging.getLogger(__name__)


class JsonPersonaSelectionStore(JsonBackedStore):
    """会話コンテキストごとに選択されたペルソナを保持するストア"""

    def __init__(self, document: JsonDocument, default: str) -> None:
        """初期化

        Args:
            document: 保存先 JSON ファイル
            default: 未選択のコンテキストで使うペルソナ
        """
        super().__init__(document)
        self._default = default
        self._selections: dict[str, str] = {}

    def load(self) -> None:
        data = self._document.load()
        self._selections = {
            str(context_id): str(persona)
            for context_id, persona in data.items()
            if isinstance(persona, str)
        }
        logger.info("Loaded persona selections for %d contexts", len(self._selections))

    def _serialize(self) -> dict[str, Any]:
        return dict(self._selections)

    def get(self, context_id: str) -> str:
        return self._selections.get(context_id, self._default)

    def set(self, context_id: str, persona: str) -> None:
        """選択を更新する（保存は呼び出し側で行う）"""
        self._selections[context_id] = persona
        logger.info("Persona for context %s set to %s", context_id, persona)
