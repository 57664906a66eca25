"""YAML設定ファイルの読み込みと環境変数展開"""

import dataclasses
import os
import re
from pathlib import Path
from typing import Any, TypeVar

import yaml

from parley.config.models import (
    CommandsConfig,
    Config,
    DiscordConfig,
    HealthConfig,
    LLMConfig,
    LoggingConfig,
    MemoryConfig,
    PersonaConfig,
    PersonaFiles,
    PersonasConfig,
    ResponseConfig,
    VoiceConfig,
)


class ConfigError(Exception):
    """設定関連の基底例外"""


class ConfigValidationError(ConfigError):
    """設定値のバリデーションエラー"""


class EnvironmentVariableError(ConfigError):
    """環境変数が見つからないエラー"""


# 環境変数パターン: ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

_T = TypeVar("_T")


def expand_env_vars(value: str) -> str:
    """文字列中の ${VAR_NAME} を環境変数の値に置換する

    Args:
        value: 置換対象の文字列

    Returns:
        環境変数が展開された文字列

    Raises:
        EnvironmentVariableError: 環境変数が未設定
    """
    if not value:
        return value

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise EnvironmentVariableError(
                f"Environment variable '{var_name}' is not set"
            )
        return env_value

    return ENV_VAR_PATTERN.sub(replace_var, value)


def _expand_recursive(data: Any) -> Any:
    """データ構造を再帰的に走査し、文字列中の環境変数を展開する"""
    if isinstance(data, dict):
        return {key: _expand_recursive(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _validate_required_field(data: dict[str, Any], field: str, parent: str = "") -> Any:
    """必須フィールドの存在を検証する

    Args:
        data: 検証対象のdict
        field: フィールド名
        parent: 親フィールド名（エラーメッセージ用）

    Returns:
        フィールドの値

    Raises:
        ConfigValidationError: フィールドが存在しない
    """
    if field not in data or data[field] is None:
        full_path = f"{parent}.{field}" if parent else field
        raise ConfigValidationError(f"Required field '{full_path}' is missing")
    return data[field]


def _build_section(cls: type[_T], data: dict[str, Any] | None, section: str) -> _T:
    """任意セクションを dataclass に変換する

    未指定の項目は dataclass のデフォルト値を使う。

    Raises:
        ConfigValidationError: 未知の項目が含まれている
    """
    if not data:
        return cls()
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Section '{section}' must be a mapping")

    known = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigValidationError(
            f"Unknown field(s) in '{section}': {', '.join(unknown)}"
        )
    return cls(**data)


def _as_id_list(values: list[Any] | None) -> list[str]:
    """Discord の ID は YAML では数値になりやすいので文字列に揃える"""
    return [str(value) for value in values or []]


def _build_llm(llm_data: dict[str, Any]) -> LLMConfig:
    model = _validate_required_field(llm_data, "model", "llm")
    raw_keys = _validate_required_field(llm_data, "api_keys", "llm")
    if isinstance(raw_keys, str):
        raw_keys = [raw_keys]
    api_keys = [str(key) for key in raw_keys if key]
    if not api_keys:
        raise ConfigValidationError("'llm.api_keys' must contain at least one key")

    options = {k: v for k, v in llm_data.items() if k not in ("model", "api_keys")}
    llm = _build_section(LLMConfig, {"model": model, **options}, "llm")
    llm.api_keys = api_keys
    if llm.max_attempts < 1:
        raise ConfigValidationError("'llm.max_attempts' must be at least 1")
    return llm


def _build_personas(personas_data: dict[str, Any]) -> PersonasConfig:
    directory = _validate_required_field(personas_data, "directory", "personas")
    default = str(_validate_required_field(personas_data, "default", "personas"))
    available_data = _validate_required_field(personas_data, "available", "personas")

    available: dict[str, PersonaConfig] = {}
    for raw_key, item in available_data.items():
        key = str(raw_key).lower()
        item = item or {}
        files_data = item.get("files") or {}
        defaults = PersonaFiles.for_key(key)
        available[key] = PersonaConfig(
            name=item.get("name", key.capitalize()),
            confirmation=item.get("confirmation", ""),
            files=PersonaFiles(
                personality=files_data.get("personality", defaults.personality),
                character_info=files_data.get(
                    "character_info", defaults.character_info
                ),
                prompt=files_data.get("prompt", defaults.prompt),
            ),
        )

    default = default.lower()
    if default not in available:
        raise ConfigValidationError(
            f"Default persona '{default}' is not listed in 'personas.available'"
        )
    return PersonasConfig(directory=directory, default=default, available=available)


def load_config(path: str | Path) -> Config:
    """設定ファイルを読み込む

    Args:
        path: config.yaml のパス

    Returns:
        Config オブジェクト

    Raises:
        FileNotFoundError: ファイルが存在しない
        ConfigValidationError: 必須項目が欠落
        EnvironmentVariableError: 環境変数が未設定
        yaml.YAMLError: YAML構文エラー
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)

    # 環境変数を展開
    data = _expand_recursive(raw_data or {})

    # 必須セクションの検証
    discord_data = _validate_required_field(data, "discord")
    llm_data = _validate_required_field(data, "llm")
    personas_data = _validate_required_field(data, "personas")

    discord = DiscordConfig(
        token=_validate_required_field(discord_data, "token", "discord"),
    )
    llm = _build_llm(llm_data)
    personas = _build_personas(personas_data)

    memory = _build_section(MemoryConfig, data.get("memory"), "memory")
    if memory.history_limit < 1:
        raise ConfigValidationError("'memory.history_limit' must be at least 1")

    response = _build_section(ResponseConfig, data.get("response"), "response")
    response.proactive_guild_ids = _as_id_list(response.proactive_guild_ids)
    response.mirror_channel_ids = {
        str(guild_id): str(channel_id)
        for guild_id, channel_id in response.mirror_channel_ids.items()
    }

    commands = _build_section(CommandsConfig, data.get("commands"), "commands")

    voice = _build_section(VoiceConfig, data.get("voice"), "voice")
    voice.guild_ids = _as_id_list(voice.guild_ids)

    # HealthConfig (optional)
    health: HealthConfig | None = None
    if data.get("health"):
        health = _build_section(HealthConfig, data["health"], "health")

    # LoggingConfig (optional)
    logging_config: LoggingConfig | None = None
    logging_data = data.get("logging")
    if logging_data:
        logging_config = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            format=logging_data.get(
                "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            ),
            loggers=logging_data.get("loggers"),
            debug_llm_messages=logging_data.get("debug_llm_messages", False),
        )

    return Config(
        discord=discord,
        llm=llm,
        personas=personas,
        memory=memory,
        response=response,
        commands=commands,
        voice=voice,
        health=health,
        logging=logging_config,
    )
