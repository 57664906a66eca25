"""Out-of-process batch decoding of Opus frames."""

import asyncio
import contextlib
import logging
import sys

from parley.infrastructure.voice.framing import pack_frames

logger = logging.getLogger(__name__)

WORKER_MODULE = "parley.infrastructure.voice.decoder_worker"


class BatchDecoder:
    """Decodes each batch in a freshly spawned worker process.

    A new decoder per batch avoids state carried over between batches, and a
    worker that crashes, hangs or exits non-zero only costs that batch: the
    result is empty PCM and nothing is raised.
    """

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        command: list[str] | None = None,
    ) -> None:
        """Initialize the decoder.

        Args:
            timeout_seconds: Maximum time a worker may take for one batch.
            command: Worker command line. Defaults to running the bundled
                worker module with the current interpreter.
        """
        self._timeout = timeout_seconds
        self._command = command or [sys.executable, "-m", WORKER_MODULE]

    async def decode(self, frames: list[bytes]) -> bytes:
        """Decode a batch of frames.

        Args:
            frames: Opus packets in arrival order.

        Returns:
            Concatenated PCM, or b"" when the worker failed.
        """
        if not frames:
            return b""

        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Could not start decoder worker: %s", e)
            return b""

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(pack_frames(frames)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Decoder worker timed out after %.1fs (%d frames)",
                self._timeout,
                len(frames),
            )
            return b""
        except OSError as e:
            logger.warning("Decoder worker I/O failed: %s", e)
            return b""
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            logger.warning(
                "Decoder worker exited with code %s: %s",
                process.returncode,
                stderr.decode("utf-8", errors="replace").strip()[-500:],
            )
            return b""

        logger.debug("Decoded %d frames into %d bytes", len(frames), len(stdout))
        return stdout
