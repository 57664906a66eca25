"""Per-speaker voice capture state machine."""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from parley.domain.entities import VoiceBuffer, VoiceState
from parley.infrastructure.events import KeyedScheduler

logger = logging.getLogger(__name__)

SpeechCallback = Callable[[str, bytes], Awaitable[None]]


class FrameDecoder(Protocol):
    async def decode(self, frames: list[bytes]) -> bytes: ...


class VoiceCapturePipeline:
    """Buffers Opus frames per speaker and hands decoded speech onward.

    Each frame resets the speaker's flush timer. When it fires, the frames
    captured so far are decoded and, if long enough, passed to the speech
    callback while the speaker keeps buffering. When the platform reports the
    end of a stream, a grace timer is armed instead; when that fires the
    remaining frames are drained and the speaker returns to idle.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        decoder: FrameDecoder,
        scheduler: KeyedScheduler,
        on_speech: SpeechCallback,
        *,
        flush_delay_seconds: float = 2.0,
        end_grace_seconds: float = 5.0,
        min_pcm_bytes: int = 48000 * 2 * 2 * 3,
        key_prefix: str = "voice",
    ) -> None:
        """Initialize the pipeline.

        Args:
            decoder: Batch decoder for Opus frames.
            scheduler: Timer scheduler shared with the rest of the process.
            on_speech: Called with (speaker_id, pcm) for every accepted batch.
            flush_delay_seconds: Silence within speech before a flush.
            end_grace_seconds: Delay between stream end and the final drain.
            min_pcm_bytes: Decoded batches shorter than this are dropped.
            key_prefix: Prefix for timer keys, unique per voice connection.
        """
        self._decoder = decoder
        self._scheduler = scheduler
        self._on_speech = on_speech
        self._flush_delay = flush_delay_seconds
        self._end_grace = end_grace_seconds
        self._min_pcm_bytes = min_pcm_bytes
        self._key_prefix = key_prefix
        self._buffers: dict[str, VoiceBuffer] = {}
        # Buffers detached by a drain that is still decoding
        self._draining: dict[str, VoiceBuffer] = {}

    def state(self, speaker_id: str) -> VoiceState:
        buffer = self._buffers.get(speaker_id)
        return buffer.state if buffer is not None else VoiceState.IDLE

    @property
    def speakers(self) -> list[str]:
        return list(self._buffers)

    def push_frame(self, speaker_id: str, frame: bytes) -> None:
        """Add a frame and restart the speaker's flush timer."""
        buffer = self._buffers.get(speaker_id)
        if buffer is None:
            logger.debug("Speaker %s started buffering", speaker_id)
            buffer = VoiceBuffer(speaker_id=speaker_id)
            self._buffers[speaker_id] = buffer

        self._scheduler.cancel(self._grace_key(speaker_id))
        buffer.append(frame)
        buffer.state = VoiceState.BUFFERING
        self._scheduler.schedule(
            self._flush_key(speaker_id),
            self._flush_delay,
            lambda: self._flush(speaker_id),
        )

    def end_stream(self, speaker_id: str) -> None:
        """Handle the platform reporting the end of a speaker's stream."""
        if speaker_id not in self._buffers:
            return
        logger.debug("Stream ended for speaker %s, waiting %.1fs", speaker_id, self._end_grace)
        self._scheduler.cancel(self._flush_key(speaker_id))
        self._scheduler.schedule(
            self._grace_key(speaker_id),
            self._end_grace,
            lambda: self._drain(speaker_id),
        )

    def abort(self, speaker_id: str) -> None:
        """Discard a speaker's buffer after a stream error.

        A flush or drain already decoding for the speaker finishes without
        submitting anything.
        """
        self._scheduler.cancel(self._flush_key(speaker_id))
        self._scheduler.cancel(self._grace_key(speaker_id))
        draining = self._draining.pop(speaker_id, None)
        if draining is not None:
            draining.aborted = True
        buffer = self._buffers.pop(speaker_id, None)
        if buffer is not None:
            buffer.aborted = True
            logger.warning("Discarded audio buffer of speaker %s after stream error", speaker_id)

    def abort_all(self) -> None:
        for speaker_id in set(self._buffers) | set(self._draining):
            self.abort(speaker_id)

    def close(self) -> None:
        """Cancel every timer and drop all buffers without submitting."""
        self.abort_all()

    async def _flush(self, speaker_id: str) -> None:
        buffer = self._buffers.get(speaker_id)
        if buffer is None:
            return
        buffer.state = VoiceState.FLUSHING
        frames = buffer.take_frames()
        logger.debug("Flushing %d frames of speaker %s", len(frames), speaker_id)
        try:
            await self._process(buffer, frames)
        finally:
            if buffer.state is VoiceState.FLUSHING:
                buffer.state = VoiceState.BUFFERING

    async def _drain(self, speaker_id: str) -> None:
        buffer = self._buffers.pop(speaker_id, None)
        if buffer is None:
            return
        self._scheduler.cancel(self._flush_key(speaker_id))
        buffer.state = VoiceState.DRAINING
        frames = buffer.take_frames()
        logger.debug("Draining %d frames of speaker %s", len(frames), speaker_id)
        self._draining[speaker_id] = buffer
        try:
            await self._process(buffer, frames)
        finally:
            if self._draining.get(speaker_id) is buffer:
                del self._draining[speaker_id]

    async def _process(self, buffer: VoiceBuffer, frames: list[bytes]) -> None:
        if not frames:
            return
        speaker_id = buffer.speaker_id
        pcm = await self._decoder.decode(frames)
        if buffer.aborted:
            logger.debug("Dropping decoded audio of aborted speaker %s", speaker_id)
            return
        if len(pcm) < self._min_pcm_bytes:
            logger.info(
                "Discarding %d bytes of audio from speaker %s (below %d)",
                len(pcm),
                speaker_id,
                self._min_pcm_bytes,
            )
            return
        await self._on_speech(speaker_id, pcm)

    def _flush_key(self, speaker_id: str) -> str:
        return f"{self._key_prefix}:{speaker_id}:flush"

    def _grace_key(self, speaker_id: str) -> str:
        return f"{self._key_prefix}:{speaker_id}:grace"
