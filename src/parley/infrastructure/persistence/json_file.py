"""JSON ファイルによる永続化の共通処理"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from parley.infrastructure.persistence.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class JsonDocument:
    """1つの JSON ファイル

    書き込みは一時ファイルに書いてから os.replace で置き換えるため、
    途中で落ちても既存のファイルが壊れることはない。
    """

    def __init__(self, path: str | Path) -> None:
        """初期化

        Args:
            path: JSON ファイルのパス
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """ファイルを読み込む

        ファイルが無い場合や壊れている場合は空の dict を返す。
        起動を止めるよりもデータを失う方を選ぶ。

        Returns:
            読み込んだ dict
        """
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("No existing file found at %s. Starting fresh.", self._path)
            return {}
        except (OSError, ValueError) as e:
            logger.error("Error loading %s, starting fresh: %s", self._path, e)
            return {}

        if not isinstance(data, dict):
            logger.error(
                "Unexpected top-level type in %s (%s), starting fresh",
                self._path,
                type(data).__name__,
            )
            return {}
        return data

    def write(self, payload: str) -> None:
        """シリアライズ済みの文字列をアトミックに書き込む

        Raises:
            PersistenceError: 書き込みに失敗
        """
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(payload)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)


class JsonBackedStore:
    """JSON ファイルに保存されるストアの基底クラス

    保存要求は合流させる。保存中に来た要求は待たずに捨て、
    最新の状態は次の保存（定期保存や次の変更）で書き込まれる。
    """

    def __init__(self, document: JsonDocument) -> None:
        self._document = document
        self._saving = False
        self._save_tasks: set[asyncio.Task[bool]] = set()

    def _serialize(self) -> Any:
        raise NotImplementedError

    @property
    def is_saving(self) -> bool:
        return self._saving

    async def save(self) -> bool:
        """現在の状態を保存する

        Returns:
            書き込んだ場合 True。保存中で読み飛ばした場合や失敗した場合は False
        """
        if self._saving:
            logger.debug("Save of %s in progress, skipping", self._document.path)
            return False

        self._saving = True
        try:
            # スナップショットは await の前に取る
            payload = json.dumps(self._serialize(), ensure_ascii=False, indent=2)
            await asyncio.to_thread(self._document.write, payload)
            logger.debug("Saved %s", self._document.path)
            return True
        except PersistenceError as e:
            logger.error("Save failed: %s", e)
            return False
        finally:
            self._saving = False

    def request_save(self) -> None:
        """バックグラウンドで保存を開始する"""
        task = asyncio.get_running_loop().create_task(self.save())
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def wait_saved(self) -> None:
        """開始済みのバックグラウンド保存の完了を待つ"""
        while self._save_tasks:
            await asyncio.gather(*list(self._save_tasks), return_exceptions=True)

    def flush(self) -> None:
        """同期的に保存する（終了時用）"""
        try:
            payload = json.dumps(self._serialize(), ensure_ascii=False, indent=2)
            self._document.write(payload)
            logger.info("Flushed %s", self._document.path)
        except PersistenceError as e:
            logger.error("Flush failed: %s", e)
