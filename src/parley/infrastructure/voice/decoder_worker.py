"""One-shot Opus decoder process.

Reads length-prefixed Opus packets from stdin until EOF, decodes them with a
fresh decoder and writes the concatenated 48 kHz stereo s16le PCM to stdout.
Packets that fail to decode are skipped.

Run as ``python -m parley.infrastructure.voice.decoder_worker``.
"""

import logging
import sys

import discord.opus

from parley.infrastructure.voice.framing import read_frames

logger = logging.getLogger("parley.decoder_worker")


def decode_stream(stdin, stdout) -> int:
    """Decode every packet of ``stdin`` into ``stdout``.

    Returns:
        Number of packets that were skipped.
    """
    decoder = discord.opus.Decoder()
    skipped = 0
    for packet in read_frames(stdin):
        try:
            pcm = decoder.decode(packet, fec=False)
        except discord.opus.OpusError as e:
            skipped += 1
            logger.debug("Skipping undecodable packet: %s", e)
            continue
        if pcm:
            stdout.write(pcm)
    stdout.flush()
    return skipped


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    try:
        skipped = decode_stream(sys.stdin.buffer, sys.stdout.buffer)
    except Exception:
        logger.exception("Fatal error while decoding batch")
        return 1
    if skipped:
        logger.warning("Skipped %d undecodable packets", skipped)
    return 0


if __name__ == "__main__":
    sys.exit(main())
