"""Speech-to-text for decoded voice batches."""

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path

from parley.domain.services import GenerationService
from parley.infrastructure.voice.exceptions import TranscodeError
from parley.infrastructure.voice.transcoder import WebmTranscoder

logger = logging.getLogger(__name__)

WEBM_MIME_TYPE = "audio/webm"


def is_noise(text: str, noise_phrases: list[str], min_chars: int) -> bool:
    """Check whether a transcript carries no usable speech.

    Args:
        text: Transcript returned by the model.
        noise_phrases: Phrases the model uses for silence or noise.
        min_chars: Transcripts shorter than this (after stripping) are noise.

    Returns:
        True if the transcript should be discarded.
    """
    lowered = text.lower()
    if any(phrase.lower() in lowered for phrase in noise_phrases):
        return True
    return len(lowered.strip()) < min_chars


class SpeechToText:
    """Turns decoded PCM into a transcript, or None when there is no speech."""

    def __init__(
        self,
        generation: GenerationService,
        transcoder: WebmTranscoder,
        *,
        noise_phrases: list[str],
        min_chars: int = 5,
        debug_audio_dir: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Args:
            generation: Service used in transcription mode.
            transcoder: PCM to WebM transcoder.
            noise_phrases: Transcripts containing one of these are discarded.
            min_chars: Minimum transcript length.
            debug_audio_dir: If set, every WebM batch is also written there.
            clock: Time source for debug file names.
        """
        self._generation = generation
        self._transcoder = transcoder
        self._noise_phrases = noise_phrases
        self._min_chars = min_chars
        self._debug_audio_dir = Path(debug_audio_dir) if debug_audio_dir else None
        self._clock = clock

    async def transcribe(self, pcm: bytes, speaker_id: str) -> str | None:
        """Transcribe a batch of PCM audio.

        Args:
            pcm: Decoded audio.
            speaker_id: Platform user ID of the speaker.

        Returns:
            Transcript, or None when the batch is discarded.
        """
        if not pcm:
            return None

        logger.info("Processing %d bytes of PCM from speaker %s", len(pcm), speaker_id)
        try:
            webm = await self._transcoder.transcode(pcm)
        except TranscodeError as e:
            logger.error("Discarding batch from speaker %s: %s", speaker_id, e)
            return None

        if not webm:
            logger.warning("Transcoder produced no output for speaker %s", speaker_id)
            return None

        if self._debug_audio_dir is not None:
            await self._dump(webm, speaker_id)

        text = await self._generation.transcribe(webm, WEBM_MIME_TYPE, speaker_id)
        if text is None:
            return None
        if is_noise(text, self._noise_phrases, self._min_chars):
            logger.info("No speech from speaker %s: %r", speaker_id, text)
            return None
        return text.strip()

    async def _dump(self, webm: bytes, speaker_id: str) -> None:
        assert self._debug_audio_dir is not None
        path = self._debug_audio_dir / f"user_{speaker_id}_{int(self._clock() * 1000)}.webm"
        try:
            await asyncio.to_thread(self._write_dump, path, webm)
            logger.debug("Saved WebM audio to %s", path)
        except OSError as e:
            logger.error("Failed to save debug audio file %s: %s", path, e)

    @staticmethod
    def _write_dump(path: Path, webm: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(webm)
