"""Voice capture entities."""

from dataclasses import dataclass, field
from enum import Enum


class VoiceState(Enum):
    """Capture state of a single speaker."""

    IDLE = "idle"
    BUFFERING = "buffering"
    FLUSHING = "flushing"
    DRAINING = "draining"


@dataclass
class VoiceBuffer:
    """Opus frames captured from one speaker since the last flush.

    Attributes:
        speaker_id: Platform user ID of the speaker.
        frames: Encoded frames in arrival order.
        state: Current capture state.
        aborted: Set once a stream error discarded the buffer.
    """

    speaker_id: str
    frames: list[bytes] = field(default_factory=list)
    state: VoiceState = VoiceState.BUFFERING
    aborted: bool = False

    def append(self, frame: bytes) -> None:
        self.frames.append(frame)

    def take_frames(self) -> list[bytes]:
        """Snapshot and clear the captured frames.

        Returns:
            The frames captured since the previous call.
        """
        frames = self.frames
        self.frames = []
        return frames
