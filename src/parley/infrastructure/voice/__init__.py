"""Voice capture and speech-to-text."""

from parley.infrastructure.voice.capture import VoiceCapturePipeline
from parley.infrastructure.voice.decoder import BatchDecoder
from parley.infrastructure.voice.exceptions import TranscodeError
from parley.infrastructure.voice.transcoder import WebmTranscoder
from parley.infrastructure.voice.transcription import SpeechToText, is_noise

__all__ = [
    "BatchDecoder",
    "SpeechToText",
    "TranscodeError",
    "VoiceCapturePipeline",
    "WebmTranscoder",
    "is_noise",
]
