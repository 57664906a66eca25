"""Voice pipeline exceptions."""


class TranscodeError(Exception):
    """ffmpeg failed to transcode a batch of PCM audio."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        self.returncode = returncode
        super().__init__(message)
