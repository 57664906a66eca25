"""Discord voice connections and audio receive."""

import asyncio
import logging
import random
from collections.abc import Callable

import discord
from discord.ext import voice_recv

from parley.config import VoiceConfig
from parley.domain.services import MessagingService
from parley.infrastructure.events import KeyedScheduler
from parley.infrastructure.voice import VoiceCapturePipeline

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[str], VoiceCapturePipeline]


class CaptureSink(voice_recv.AudioSink):
    """Audio sink feeding raw Opus packets into a capture pipeline.

    discord-ext-voice-recv calls the sink from its receive thread, so every
    call is handed over to the event loop.
    """

    def __init__(
        self,
        pipeline: VoiceCapturePipeline,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self._pipeline = pipeline
        self._loop = loop

    def wants_opus(self) -> bool:
        return True

    def write(
        self,
        user: discord.User | discord.Member | None,
        data: "voice_recv.VoiceData",
    ) -> None:
        if user is None or user.bot or not data.opus:
            return
        self._loop.call_soon_threadsafe(self._pipeline.push_frame, str(user.id), data.opus)

    def cleanup(self) -> None:
        pass

    @voice_recv.AudioSink.listener()
    def on_voice_member_speaking_stop(self, member: discord.Member) -> None:
        self._loop.call_soon_threadsafe(self._pipeline.end_stream, str(member.id))

    @voice_recv.AudioSink.listener()
    def on_voice_member_disconnect(self, member: discord.Member, ssrc: int | None) -> None:
        self._loop.call_soon_threadsafe(self._pipeline.end_stream, str(member.id))


def has_humans(channel: discord.VoiceChannel | discord.StageChannel) -> bool:
    return any(not member.bot for member in channel.members)


class DiscordVoiceManager:
    """Joins and leaves voice channels and wires audio capture.

    Presence is checked periodically for the configured guilds: the agent
    leaves a channel it is alone in after a delay, and otherwise may join a
    random populated voice channel.
    """

    def __init__(
        self,
        client: discord.Client,
        config: VoiceConfig,
        scheduler: KeyedScheduler,
        messaging: MessagingService,
        pipeline_factory: PipelineFactory,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Discord client.
            config: Voice settings.
            scheduler: Timer scheduler shared with the rest of the process.
            messaging: Used for the join announcement.
            pipeline_factory: Creates a capture pipeline for a guild ID.
            rng: Random source for join decisions.
        """
        self._client = client
        self._config = config
        self._scheduler = scheduler
        self._messaging = messaging
        self._pipeline_factory = pipeline_factory
        self._rng = rng or random.Random()
        self._pipelines: dict[str, VoiceCapturePipeline] = {}

    def is_capturing(self, guild_id: str) -> bool:
        return guild_id in self._pipelines

    async def check_all(self) -> None:
        """Run the presence check for every configured guild."""
        for guild_id in self._config.guild_ids:
            try:
                await self.check_guild(guild_id)
            except discord.DiscordException:
                logger.exception("Voice check failed for guild %s", guild_id)

    async def check_guild(self, guild_id: str) -> None:
        guild = self._client.get_guild(int(guild_id))
        if guild is None:
            logger.warning("Voice check: guild %s not found", guild_id)
            return

        voice_client = guild.voice_client
        if voice_client is not None and voice_client.is_connected():
            if not has_humans(voice_client.channel):
                self.schedule_alone_check(guild_id)
            return

        candidates = [channel for channel in guild.voice_channels if has_humans(channel)]
        if not candidates:
            logger.debug("No populated voice channel in guild %s", guild_id)
            return

        if self._rng.random() >= self._config.join_chance:
            return

        await self.join(self._rng.choice(candidates))

    def schedule_alone_check(self, guild_id: str) -> None:
        """Leave after the configured delay if still alone by then."""
        logger.info(
            "Alone in voice channel of guild %s, leaving in %.0fs unless someone joins",
            guild_id,
            self._config.alone_leave_delay_seconds,
        )
        self._scheduler.schedule(
            self._leave_key(guild_id),
            self._config.alone_leave_delay_seconds,
            lambda: self._leave_if_alone(guild_id),
        )

    async def _leave_if_alone(self, guild_id: str) -> None:
        guild = self._client.get_guild(int(guild_id))
        if guild is None or guild.voice_client is None:
            return
        if has_humans(guild.voice_client.channel):
            return
        await self.leave(guild_id)

    async def join(self, channel: discord.VoiceChannel) -> bool:
        """Connect to a voice channel and start capturing audio.

        Returns:
            True if the connection was established.
        """
        guild_id = str(channel.guild.id)
        try:
            voice_client = await channel.connect(cls=voice_recv.VoiceRecvClient)
        except (discord.ClientException, asyncio.TimeoutError) as e:
            logger.error("Failed to join voice channel %s: %s", channel.name, e)
            return False

        logger.info("Joined voice channel %s in guild %s", channel.name, guild_id)
        pipeline = self._pipeline_factory(guild_id)
        self._pipelines[guild_id] = pipeline
        loop = asyncio.get_running_loop()

        def after(error: Exception | None) -> None:
            if error is not None:
                logger.error("Voice receive error in guild %s: %s", guild_id, error)
                loop.call_soon_threadsafe(pipeline.abort_all)

        voice_client.listen(CaptureSink(pipeline, loop), after=after)

        if self._config.join_announcement:
            text_channel_id = await self._messaging.resolve_text_channel(guild_id)
            if text_channel_id is not None:
                await self._messaging.send_message(
                    text_channel_id, self._config.join_announcement
                )
        return True

    async def leave(self, guild_id: str) -> None:
        self._scheduler.cancel(self._leave_key(guild_id))
        pipeline = self._pipelines.pop(guild_id, None)
        if pipeline is not None:
            pipeline.close()

        guild = self._client.get_guild(int(guild_id))
        voice_client = guild.voice_client if guild is not None else None
        if voice_client is None:
            return
        try:
            await voice_client.disconnect(force=True)
        except discord.DiscordException as e:
            logger.error("Failed to leave voice channel in guild %s: %s", guild_id, e)
            return
        logger.info("Left voice channel in guild %s", guild_id)

    def handle_voice_state(self, guild_id: str) -> None:
        """Re-evaluate presence after someone's voice state changed."""
        guild = self._client.get_guild(int(guild_id))
        if guild is None or guild.voice_client is None:
            return
        if has_humans(guild.voice_client.channel):
            if self._scheduler.cancel(self._leave_key(guild_id)):
                logger.info("Someone joined, staying in voice channel of guild %s", guild_id)
            return
        self.schedule_alone_check(guild_id)

    async def close(self) -> None:
        for guild_id in list(self._pipelines):
            await self.leave(guild_id)

    @staticmethod
    def _leave_key(guild_id: str) -> str:
        return f"voice-leave:{guild_id}"
