"""ペルソナのテキストファイル読み込み"""

import logging
from pathlib import Path

from parley.config import PersonaConfig, PersonasConfig
from parley.domain.entities import Persona
from parley.domain.exceptions import PersonaLoadError, UnknownPersonaError

logger = logging.getLogger(__name__)


def load_persona(key: str, config: PersonaConfig, directory: Path) -> Persona:
    """1つのペルソナを読み込む

    Args:
        key: ペルソナのキー
        config: ペルソナ設定
        directory: テキストファイルのディレクトリ

    Returns:
        Persona

    Raises:
        PersonaLoadError: ファイルを読み込めない
    """
    try:
        personality = (directory / config.files.personality).read_text(encoding="utf-8")
        character_info = (directory / config.files.character_info).read_text(
            encoding="utf-8"
        )
        response_style = (directory / config.files.prompt).read_text(encoding="utf-8")
    except OSError as e:
        raise PersonaLoadError(key, f"Could not load files for persona {key}: {e}") from e

    return Persona(
        key=key,
        name=config.name,
        personality=personality.strip(),
        character_info=character_info.strip(),
        response_style=response_style.strip(),
        confirmation=config.confirmation,
    )


class PersonaLibrary:
    """設定されたペルソナの一覧

    起動時にすべて読み込む。ファイルが欠けているペルソナは
    デフォルトペルソナの内容で代用する。
    """

    def __init__(self, config: PersonasConfig) -> None:
        """初期化

        Args:
            config: ペルソナ一覧設定

        Raises:
            PersonaLoadError: デフォルトペルソナを読み込めない
        """
        self._config = config
        directory = Path(config.directory)

        # デフォルトが読めない場合は起動できない
        self._default = load_persona(
            config.default, config.available[config.default], directory
        )

        self._personas: dict[str, Persona] = {config.default: self._default}
        for key, persona_config in config.available.items():
            if key == config.default:
                continue
            try:
                self._personas[key] = load_persona(key, persona_config, directory)
            except PersonaLoadError as e:
                logger.warning("%s. Falling back to default persona %s.", e, config.default)
                self._personas[key] = self._default

        logger.info("Loaded personas: %s", ", ".join(self._personas))

    @property
    def default_key(self) -> str:
        return self._config.default

    def keys(self) -> list[str]:
        """選択可能なペルソナのキー（設定順）"""
        return list(self._config.available)

    def display_names(self) -> list[str]:
        return [self._config.available[key].name for key in self.keys()]

    def resolve(self, name: str) -> str:
        """コマンド引数をペルソナのキーに変換する（大文字小文字を区別しない）

        Raises:
            UnknownPersonaError: 該当するペルソナが無い
        """
        key = name.lower()
        if key not in self._config.available:
            raise UnknownPersonaError(name, self.display_names())
        return key

    def confirmation(self, key: str) -> str:
        persona_config = self._config.available.get(key)
        return persona_config.confirmation if persona_config else ""

    def get(self, key: str) -> Persona:
        """ペルソナを返す。未知のキーはデフォルト"""
        persona = self._personas.get(key)
        if persona is None:
            logger.warning("Persona %s not found. Using default.", key)
            return self._default
        return persona
