"""設定データクラス"""

from dataclasses import dataclass, field


@dataclass
class DiscordConfig:
    """Discord接続設定"""

    token: str


@dataclass
class LLMConfig:
    """LLM設定（LiteLLMのacompletionに渡すdict）

    Attributes:
        model: LiteLLM model string (e.g. "gemini/gemini-2.0-flash").
        api_keys: Credential pool, cycled round-robin before every attempt.
        temperature: Sampling temperature.
        max_tokens: Output token cap for generate.
        decision_max_tokens: Output token cap for decide.
        max_attempts: Total attempts for retryable failures.
        retry_base_delay_seconds: Backoff unit; attempt N waits N * base.
        max_sessions: Optional LRU bound on chat sessions (None = unbounded).
        safety_settings: Provider safety settings passed through verbatim.
    """

    model: str
    api_keys: list[str] = field(default_factory=list)
    temperature: float = 0.7
    max_tokens: int = 2048
    decision_max_tokens: int = 50
    max_attempts: int = 3
    retry_base_delay_seconds: float = 2.0
    max_sessions: int | None = None
    safety_settings: list[dict[str, str]] | None = None


@dataclass
class PersonaFiles:
    """ペルソナのテキストファイル名"""

    personality: str
    character_info: str
    prompt: str

    @classmethod
    def for_key(cls, key: str) -> "PersonaFiles":
        """Default file names for a persona key."""
        return cls(
            personality=f"{key}_personality.txt",
            character_info=f"{key}_characterInfo.txt",
            prompt=f"{key}_prompt.txt",
        )


@dataclass
class PersonaConfig:
    """ペルソナ設定"""

    name: str
    files: PersonaFiles
    confirmation: str = ""


@dataclass
class PersonasConfig:
    """ペルソナ一覧設定"""

    directory: str
    default: str
    available: dict[str, PersonaConfig]


@dataclass
class MemoryConfig:
    """記憶設定"""

    data_dir: str = "data"
    history_limit: int = 20
    active_window_seconds: float = 300.0
    save_interval_seconds: float = 300.0


DEFAULT_SUPPORTED_MIME_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
    "image/x-icon",
    "image/heic",
    "image/heif",
    "video/mp4",
    "video/mpeg",
    "video/webm",
    "video/quicktime",
    "video/x-flv",
    "video/x-msvideo",
    "video/3gpp",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "audio/aac",
    "audio/flac",
    "audio/opus",
    "audio/x-m4a",
    "audio/webm",
]

DEFAULT_REACTION_EMOJIS = [
    "👍",
    "❤️",
    "😂",
    "🤔",
    "✨",
    "💯",
    "👀",
    "🚀",
    "🎉",
    "🤩",
    "🔥",
    "✅",
    "🤯",
]


@dataclass
class ResponseConfig:
    """応答設定"""

    cooldown_seconds: float = 3.0
    read_delay_seconds: float = 2.0
    typing_seconds: float = 3.0
    proactive_every_n: int = 3
    proactive_chance: float = 0.15
    proactive_guild_ids: list[str] = field(default_factory=list)
    proactive_history_limit: int = 15
    reaction_chance: float = 0.05
    reaction_response_chance: float = 0.20
    reaction_emojis: list[str] = field(
        default_factory=lambda: list(DEFAULT_REACTION_EMOJIS)
    )
    mirror_responses: bool = True
    mirror_channel_ids: dict[str, str] = field(default_factory=dict)
    reply_excerpt_chars: int = 200
    scratch_dir: str = "temp"
    supported_mime_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_MIME_TYPES)
    )


@dataclass
class CommandsConfig:
    """コマンド設定"""

    prefix: str = "!"
    persona_command: str = "personality"
    fixed_responses: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class VoiceConfig:
    """ボイスチャンネル設定

    Attributes:
        min_speech_seconds: Decoded audio shorter than this is never transcribed.
        sample_rate / channels / sample_width: PCM layout produced by the decoder.
    """

    enabled: bool = False
    guild_ids: list[str] = field(default_factory=list)
    check_interval_seconds: float = 300.0
    join_chance: float = 0.05
    alone_leave_delay_seconds: float = 30.0
    join_announcement: str | None = "Hello everyone! I've joined the voice channel."
    flush_delay_seconds: float = 2.0
    end_grace_seconds: float = 5.0
    min_speech_seconds: float = 3.0
    sample_rate: int = 48000
    channels: int = 2
    sample_width: int = 2
    decode_timeout_seconds: float = 10.0
    ffmpeg_path: str = "ffmpeg"
    transcode_timeout_seconds: float = 30.0
    noise_phrases: list[str] = field(
        default_factory=lambda: [
            "no speech detected",
            "buzzing sound",
            "background noise",
        ]
    )
    min_transcript_chars: int = 5
    debug_audio_dir: str | None = None

    @property
    def min_pcm_bytes(self) -> int:
        """Minimum decoded PCM length accepted for transcription."""
        return int(
            self.sample_rate * self.channels * self.sample_width * self.min_speech_seconds
        )


@dataclass
class HealthConfig:
    """ヘルスチェックサーバー設定"""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LoggingConfig:
    """ログ設定"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    loggers: dict[str, str] | None = None
    debug_llm_messages: bool = False


@dataclass
class Config:
    """アプリケーション設定"""

    discord: DiscordConfig
    llm: LLMConfig
    personas: PersonasConfig
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    response: ResponseConfig = field(default_factory=ResponseConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    health: HealthConfig | None = None
    logging: LoggingConfig | None = None
