"""PCM to WebM/Opus transcoding through ffmpeg."""

import asyncio
import contextlib
import logging

from parley.infrastructure.voice.exceptions import TranscodeError

logger = logging.getLogger(__name__)


class WebmTranscoder:
    """Re-encodes raw PCM into a WebM/Opus container with ffmpeg."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        *,
        sample_rate: int = 48000,
        channels: int = 2,
        sample_width: int = 2,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._timeout = timeout_seconds
        self._sample_rate = sample_rate
        self._channels = channels
        self._frame_bytes = channels * sample_width

    def build_args(self) -> list[str]:
        return [
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "s16le",
            "-ar",
            str(self._sample_rate),
            "-ac",
            str(self._channels),
            "-i",
            "pipe:0",
            "-c:a",
            "libopus",
            "-vbr",
            "on",
            "-compression_level",
            "10",
            "-application",
            "audio",
            "-f",
            "webm",
            "pipe:1",
        ]

    async def transcode(self, pcm: bytes) -> bytes:
        """Transcode PCM into WebM.

        Trailing bytes that do not form a whole sample frame are trimmed.

        Args:
            pcm: Interleaved signed 16-bit little-endian samples.

        Returns:
            WebM bytes (b"" when there is nothing to encode).

        Raises:
            TranscodeError: ffmpeg could not be started, timed out or exited
                non-zero.
        """
        remainder = len(pcm) % self._frame_bytes
        if remainder:
            logger.warning("Trimmed %d bytes to keep whole PCM frames", remainder)
            pcm = pcm[: len(pcm) - remainder]
        if not pcm:
            return b""

        try:
            process = await asyncio.create_subprocess_exec(
                self._ffmpeg_path,
                *self.build_args(),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscodeError(f"Could not start ffmpeg: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(pcm), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise TranscodeError(f"ffmpeg timed out after {self._timeout:.1f}s") from e
        except OSError as e:
            raise TranscodeError(f"ffmpeg I/O failed: {e}") from e
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            error_msg = stderr.decode("utf-8", errors="replace").strip()
            raise TranscodeError(
                f"ffmpeg exited with code {process.returncode}: {error_msg}",
                returncode=process.returncode,
            )
        return stdout
