"""設定管理モジュール"""

from parley.config.loader import (
    ConfigError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
)
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

__all__ = [
    "CommandsConfig",
    "Config",
    "ConfigError",
    "ConfigValidationError",
    "DiscordConfig",
    "EnvironmentVariableError",
    "HealthConfig",
    "LLMConfig",
    "LoggingConfig",
    "MemoryConfig",
    "PersonaConfig",
    "PersonaFiles",
    "PersonasConfig",
    "ResponseConfig",
    "VoiceConfig",
    "expand_env_vars",
    "load_config",
]
