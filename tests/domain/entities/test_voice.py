"""Tests for VoiceBuffer."""

from parley.domain.entities import VoiceBuffer, VoiceState


class TestVoiceBuffer:
    def test_new_buffer_is_buffering(self) -> None:
        assert VoiceBuffer(speaker_id="1").state is VoiceState.BUFFERING

    def test_take_frames_clears(self) -> None:
        buffer = VoiceBuffer(speaker_id="1")
        buffer.append(b"a")
        buffer.append(b"b")

        assert buffer.take_frames() == [b"a", b"b"]
        assert buffer.frames == []
        assert buffer.take_frames() == []
