"""アプリケーションのエントリポイント"""

import asyncio
import logging
import signal
import sys
from functools import partial
from pathlib import Path
from typing import Any

import discord
import yaml

from parley.application.handlers import (
    CommandHandler,
    MessageEventHandler,
    ReactionEventHandler,
    VoiceStateEventHandler,
)
from parley.application.services import PeriodicTask
from parley.application.use_cases import (
    AttachmentProcessor,
    DeliverResponseUseCase,
    VoiceResponseUseCase,
)
from parley.config import Config, ConfigError, LoggingConfig, load_config
from parley.domain.exceptions import PersonaLoadError
from parley.infrastructure.discord import (
    DiscordEventAdapter,
    DiscordMessagingService,
    DiscordVoiceManager,
    ParleyClient,
)
from parley.infrastructure.events import EventDispatcher, KeyedScheduler
from parley.infrastructure.http.downloader import FileDownloader
from parley.infrastructure.http.health_server import HealthServer
from parley.infrastructure.llm import LiteLLMGenerationClient, LLMClient
from parley.infrastructure.persistence import (
    JsonBackedStore,
    JsonConversationStore,
    JsonDocument,
    JsonOpinionStore,
    JsonPersonaSelectionStore,
)
from parley.infrastructure.personas import PersonaLibrary
from parley.infrastructure.voice import (
    BatchDecoder,
    SpeechToText,
    VoiceCapturePipeline,
    WebmTranscoder,
)
from parley.presentation.discord_handlers import register_handlers

# Default logging for early startup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CONVERSATIONS_FILE = "conversations.json"
OPINIONS_FILE = "user_profiles.json"
PERSONA_SELECTIONS_FILE = "personalities.json"


def configure_logging(config: LoggingConfig | None) -> None:
    """Configure logging based on config.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        return

    # Get root logger
    root_logger = logging.getLogger()

    # Set root level
    level = getattr(logging, config.level.upper(), logging.INFO)
    root_logger.setLevel(level)

    # Update handler format if specified
    if root_logger.handlers:
        formatter = logging.Formatter(config.format)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    # Configure individual loggers
    if config.loggers:
        for logger_name, logger_level in config.loggers.items():
            individual_logger = logging.getLogger(logger_name)
            individual_level = getattr(logging, logger_level.upper(), logging.INFO)
            individual_logger.setLevel(individual_level)
            logger.debug(
                "Set logger '%s' to level %s", logger_name, logger_level.upper()
            )


async def save_stores(stores: list[JsonBackedStore]) -> None:
    """Save every store (periodic save).

    Picks up changes whose save was skipped while another one was running
    or that failed earlier.
    """
    for store in stores:
        await store.save()


def flush_stores(stores: list[JsonBackedStore]) -> None:
    """Write every store synchronously (used on shutdown)."""
    for store in stores:
        store.flush()


def build_voice_manager(
    config: Config,
    client: ParleyClient,
    scheduler: KeyedScheduler,
    messaging_service: DiscordMessagingService,
    voice_response: VoiceResponseUseCase,
) -> DiscordVoiceManager:
    """Wire the capture pipeline factory and the voice manager."""
    voice_config = config.voice
    decoder = BatchDecoder(timeout_seconds=voice_config.decode_timeout_seconds)

    def create_pipeline(guild_id: str) -> VoiceCapturePipeline:
        return VoiceCapturePipeline(
            decoder,
            scheduler,
            partial(voice_response.execute, guild_id),
            flush_delay_seconds=voice_config.flush_delay_seconds,
            end_grace_seconds=voice_config.end_grace_seconds,
            min_pcm_bytes=voice_config.min_pcm_bytes,
            key_prefix=f"voice:{guild_id}",
        )

    return DiscordVoiceManager(
        client,
        voice_config,
        scheduler,
        messaging_service,
        create_pipeline,
    )


async def main() -> int:
    """アプリケーションを起動する

    Returns:
        終了コード
    """
    config_path = Path("config.yaml")
    if not config_path.exists():
        logger.error("config.yaml not found")
        return 1

    try:
        config = load_config(config_path)
    except (ConfigError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return 1

    # Apply logging configuration
    configure_logging(config.logging)

    try:
        personas = PersonaLibrary(config.personas)
    except PersonaLoadError as e:
        logger.error("Failed to load default persona: %s", e)
        return 1

    # Load persisted state
    scheduler = KeyedScheduler()
    data_dir = Path(config.memory.data_dir)
    conversation_store = JsonConversationStore(
        JsonDocument(data_dir / CONVERSATIONS_FILE),
        scheduler,
        history_limit=config.memory.history_limit,
        active_window_seconds=config.memory.active_window_seconds,
    )
    opinion_store = JsonOpinionStore(JsonDocument(data_dir / OPINIONS_FILE))
    persona_selection = JsonPersonaSelectionStore(
        JsonDocument(data_dir / PERSONA_SELECTIONS_FILE), personas.default_key
    )
    stores: list[JsonBackedStore] = [conversation_store, opinion_store, persona_selection]
    conversation_store.load()
    opinion_store.load()
    persona_selection.load()

    # Generation service
    llm_client = LLMClient(config.llm)
    debug_llm_messages = bool(config.logging and config.logging.debug_llm_messages)
    generation_service = LiteLLMGenerationClient(
        llm_client,
        decision_max_tokens=config.llm.decision_max_tokens,
        max_sessions=config.llm.max_sessions,
        debug_llm_messages=debug_llm_messages,
    )

    # Log in to get the bot user ID before wiring the handlers
    client = ParleyClient()
    try:
        await client.login(config.discord.token)
    except discord.LoginFailure as e:
        logger.error("Failed to log in to Discord: %s", e)
        await client.close()
        return 1
    bot_user_id = client.user_id
    logger.info("Bot user ID: %s", bot_user_id)

    event_adapter = DiscordEventAdapter(client)
    messaging_service = DiscordMessagingService(
        client, event_adapter, config.response.mirror_channel_ids
    )

    deliver_response = DeliverResponseUseCase(
        messaging_service=messaging_service,
        conversation_store=conversation_store,
        config=config.response,
        bot_user_id=bot_user_id,
    )
    commands = CommandHandler(
        messaging_service=messaging_service,
        personas=personas,
        persona_selection=persona_selection,
        conversation_store=conversation_store,
        config=config.commands,
    )
    attachments = AttachmentProcessor(
        FileDownloader(),
        config.response.scratch_dir,
        config.response.supported_mime_types,
    )

    dispatcher = EventDispatcher()
    dispatcher.register_handler(
        MessageEventHandler(
            messaging_service=messaging_service,
            generation_service=generation_service,
            conversation_store=conversation_store,
            opinion_store=opinion_store,
            persona_selection=persona_selection,
            personas=personas,
            commands=commands,
            attachments=attachments,
            deliver_response=deliver_response,
            config=config.response,
            bot_user_id=bot_user_id,
        ).handle
    )
    dispatcher.register_handler(
        ReactionEventHandler(
            messaging_service=messaging_service,
            generation_service=generation_service,
            conversation_store=conversation_store,
            persona_selection=persona_selection,
            personas=personas,
            deliver_response=deliver_response,
            config=config.response,
            bot_user_id=bot_user_id,
        ).handle
    )

    periodic_tasks = [
        PeriodicTask(
            "persistence-save",
            partial(save_stores, stores),
            config.memory.save_interval_seconds,
        )
    ]

    voice_manager: DiscordVoiceManager | None = None
    if config.voice.enabled:
        transcoder = WebmTranscoder(
            config.voice.ffmpeg_path,
            sample_rate=config.voice.sample_rate,
            channels=config.voice.channels,
            sample_width=config.voice.sample_width,
            timeout_seconds=config.voice.transcode_timeout_seconds,
        )
        speech_to_text = SpeechToText(
            generation_service,
            transcoder,
            noise_phrases=config.voice.noise_phrases,
            min_chars=config.voice.min_transcript_chars,
            debug_audio_dir=config.voice.debug_audio_dir,
        )
        voice_response = VoiceResponseUseCase(
            transcriber=speech_to_text,
            generation_service=generation_service,
            messaging_service=messaging_service,
            persona_selection=persona_selection,
            personas=personas,
        )
        voice_manager = build_voice_manager(
            config, client, scheduler, messaging_service, voice_response
        )
        dispatcher.register_handler(
            VoiceStateEventHandler(voice_manager, config.voice.guild_ids).handle
        )
        periodic_tasks.append(
            PeriodicTask(
                "voice-check", voice_manager.check_all, config.voice.check_interval_seconds
            )
        )

    register_handlers(client, dispatcher, event_adapter)

    health_server: HealthServer | None = None
    if config.health is not None:
        health_server = HealthServer(
            client,
            periodic_tasks,
            host=config.health.host,
            port=config.health.port,
        )
        await health_server.start()

    # Setup signal handlers for graceful shutdown
    stop_event = asyncio.Event()
    exit_code = 0
    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Received shutdown signal...")
        stop_event.set()

    def exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        nonlocal exit_code
        loop.default_exception_handler(context)
        logger.error("Unhandled exception, saving state and exiting")
        flush_stores(stores)
        exit_code = 1
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, shutdown_handler)
    loop.add_signal_handler(signal.SIGTERM, shutdown_handler)
    loop.set_exception_handler(exception_handler)

    logger.info("Starting %s...", personas.get(personas.default_key).name)
    client_task = asyncio.create_task(client.connect())
    task_handles = [asyncio.create_task(task.start()) for task in periodic_tasks]
    stop_task = asyncio.create_task(stop_event.wait())

    # Wait for shutdown signal or the gateway connection ending
    await asyncio.wait({client_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    if client_task.done() and not client_task.cancelled() and client_task.exception():
        logger.error("Discord connection failed: %s", client_task.exception())
        exit_code = 1

    # Graceful shutdown
    logger.info("Shutting down...")

    for task in periodic_tasks:
        await task.stop()

    scheduler.cancel_all()
    if voice_manager is not None:
        await voice_manager.close()
    await dispatcher.shutdown()

    if health_server is not None:
        await health_server.stop()

    await client.close()

    # Cancel any remaining tasks
    stop_task.cancel()
    client_task.cancel()
    for handle in task_handles:
        handle.cancel()
    await asyncio.gather(client_task, stop_task, *task_handles, return_exceptions=True)

    flush_stores(stores)

    logger.info("Shutdown complete")
    return exit_code


def run() -> None:
    """Run the async main function."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
