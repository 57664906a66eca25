"""Length-prefixed framing for the decoder worker's stdin."""

import struct
from collections.abc import Iterator
from typing import BinaryIO

_HEADER = struct.Struct(">I")


def pack_frames(frames: list[bytes]) -> bytes:
    """Encode frames as a sequence of 4-byte big-endian length + payload."""
    return b"".join(_HEADER.pack(len(frame)) + frame for frame in frames)


def read_frames(stream: BinaryIO) -> Iterator[bytes]:
    """Yield frames from a stream written by :func:`pack_frames`.

    Stops at end of stream. A truncated trailing frame is dropped.
    """
    while True:
        header = stream.read(_HEADER.size)
        if len(header) < _HEADER.size:
            return
        (length,) = _HEADER.unpack(header)
        payload = stream.read(length)
        if len(payload) < length:
            return
        yield payload
