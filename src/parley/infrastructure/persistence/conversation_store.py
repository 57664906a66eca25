"""JSON 実装の ConversationStore"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from parley.domain.entities import Turn
from parley.infrastructure.events import KeyedScheduler
from parley.infrastructure.persistence.json_file import JsonBackedStore, JsonDocument

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JsonConversationStore(JsonBackedStore):
    """会話履歴とアクティブ状態を管理するストア

    履歴は context -> channel -> persona -> [Turn] の入れ子構造で保持し、
    同じ構造で JSON に保存する。アクティブ状態は保存しない。
    """

    def __init__(
        self,
        document: JsonDocument,
        scheduler: KeyedScheduler,
        *,
        history_limit: int = 20,
        active_window_seconds: float = 300.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """初期化

        Args:
            document: 保存先 JSON ファイル
            scheduler: アクティブ期限のタイマー
            history_limit: 1 パーティションあたりの最大件数
            active_window_seconds: アクティブ状態の有効期間
            clock: タイムスタンプ取得関数
        """
        super().__init__(document)
        self._scheduler = scheduler
        self._history_limit = history_limit
        self._active_window = active_window_seconds
        self._clock = clock
        self._conversations: dict[str, dict[str, dict[str, list[Turn]]]] = {}
        self._active: dict[str, set[str]] = {}

    def load(self) -> None:
        """ファイルから履歴を読み込む"""
        data = self._document.load()
        conversations: dict[str, dict[str, dict[str, list[Turn]]]] = {}
        for context_id, channels in data.items():
            if not isinstance(channels, dict):
                continue
            for channel_id, personas in channels.items():
                if not isinstance(personas, dict):
                    continue
                for persona, turns in personas.items():
                    try:
                        history = [Turn.from_dict(t) for t in turns]
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning(
                            "Skipping malformed history %s/%s/%s: %s",
                            context_id,
                            channel_id,
                            persona,
                            e,
                        )
                        continue
                    if history:
                        conversations.setdefault(context_id, {}).setdefault(
                            channel_id, {}
                        )[persona] = history[-self._history_limit :]
        self._conversations = conversations
        logger.info("Loaded conversations for %d contexts", len(conversations))

    def _serialize(self) -> dict[str, Any]:
        return {
            context_id: {
                channel_id: {
                    persona: [turn.to_dict() for turn in turns]
                    for persona, turns in personas.items()
                }
                for channel_id, personas in channels.items()
            }
            for context_id, channels in self._conversations.items()
        }

    def append(
        self,
        context_id: str,
        channel_id: str,
        persona: str,
        content: str,
        author_id: str,
    ) -> None:
        """履歴に追加する

        上限を超えた古いものから捨て、アクティブ期限を延長し、保存を要求する。
        """
        history = (
            self._conversations.setdefault(context_id, {})
            .setdefault(channel_id, {})
            .setdefault(persona, [])
        )
        history.append(Turn(content=content, author_id=author_id, timestamp=self._clock()))
        if len(history) > self._history_limit:
            del history[: len(history) - self._history_limit]

        self._mark_active(context_id, channel_id)
        self.request_save()

    def history(self, context_id: str, channel_id: str, persona: str) -> list[Turn]:
        """履歴を古い順に返す（存在しない場合は空リスト）"""
        return list(
            self._conversations.get(context_id, {})
            .get(channel_id, {})
            .get(persona, [])
        )

    def is_active(self, context_id: str, channel_id: str) -> bool:
        return channel_id in self._active.get(context_id, set())

    def clear_history(self, context_id: str, channel_id: str, persona: str) -> None:
        """指定ペルソナの履歴を削除し、空になった親も削除する"""
        channels = self._conversations.get(context_id)
        if channels is not None:
            personas = channels.get(channel_id)
            if personas is not None:
                personas.pop(persona, None)
                if not personas:
                    del channels[channel_id]
            if not channels:
                del self._conversations[context_id]
        logger.info(
            "Cleared history for persona %s in context %s, channel %s",
            persona,
            context_id,
            channel_id,
        )
        self.request_save()

    def _mark_active(self, context_id: str, channel_id: str) -> None:
        self._active.setdefault(context_id, set()).add(channel_id)
        self._scheduler.schedule(
            f"active:{context_id}:{channel_id}",
            self._active_window,
            lambda: self._expire(context_id, channel_id),
        )

    def _expire(self, context_id: str, channel_id: str) -> None:
        channels = self._active.get(context_id)
        if channels is not None:
            channels.discard(channel_id)
            if not channels:
                del self._active[context_id]
        logger.info("Context %s in channel %s is now inactive", context_id, channel_id)
