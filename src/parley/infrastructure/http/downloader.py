"""Attachment downloads over HTTP."""

import asyncio
import logging
from pathlib import Path

import aiohttp

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class DownloadError(Exception):
    """An attachment could not be downloaded."""


class FileDownloader:
    """Streams remote files to local paths with aiohttp."""

    def __init__(self, timeout_seconds: float = 30.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def download(self, url: str, destination: str | Path) -> Path:
        """Download ``url`` into ``destination``.

        A partially written file is removed when the download fails.

        Args:
            url: Source URL.
            destination: Target file path. Parent directories are created.

        Returns:
            The destination path.

        Raises:
            DownloadError: The request failed or returned a non-2xx status.
        """
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        raise DownloadError(
                            f"Failed to download file: {response.status} {response.reason}"
                        )
                    with open(path, "wb") as f:
                        async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
                            f.write(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            path.unlink(missing_ok=True)
            raise DownloadError(f"Error downloading {url}: {e}") from e
        except DownloadError:
            path.unlink(missing_ok=True)
            raise

        logger.debug("File downloaded to %s", path)
        return path
