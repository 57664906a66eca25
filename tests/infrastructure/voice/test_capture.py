"""Tests for VoiceCapturePipeline."""

import asyncio

import pytest

from parley.domain.entities import VoiceState
from parley.infrastructure.events import KeyedScheduler
from parley.infrastructure.voice import VoiceCapturePipeline

FRAME_PCM_BYTES = 100


class FakeDecoder:
    """Decodes every frame into a fixed amount of PCM."""

    def __init__(self) -> None:
        self.batches: list[list[bytes]] = []

    async def decode(self, frames: list[bytes]) -> bytes:
        self.batches.append(list(frames))
        return b"\x00" * (FRAME_PCM_BYTES * len(frames))


class TestVoiceCapturePipeline:
    """Tests for VoiceCapturePipeline."""

    @pytest.fixture
    def decoder(self) -> FakeDecoder:
        return FakeDecoder()

    @pytest.fixture
    def scheduler(self) -> KeyedScheduler:
        return KeyedScheduler()

    @pytest.fixture
    def submitted(self) -> list[tuple[str, int]]:
        return []

    @pytest.fixture
    def pipeline(
        self,
        decoder: FakeDecoder,
        scheduler: KeyedScheduler,
        submitted: list[tuple[str, int]],
    ) -> VoiceCapturePipeline:
        async def on_speech(speaker_id: str, pcm: bytes) -> None:
            submitted.append((speaker_id, len(pcm)))

        return VoiceCapturePipeline(
            decoder,
            scheduler,
            on_speech,
            flush_delay_seconds=0.05,
            end_grace_seconds=0.05,
            min_pcm_bytes=3 * FRAME_PCM_BYTES,
        )

    async def settle(self, scheduler: KeyedScheduler, seconds: float = 0.12) -> None:
        await asyncio.sleep(seconds)
        await scheduler.wait_running()

    async def test_first_frame_starts_buffering(self, pipeline: VoiceCapturePipeline) -> None:
        assert pipeline.state("u1") is VoiceState.IDLE

        pipeline.push_frame("u1", b"f")

        assert pipeline.state("u1") is VoiceState.BUFFERING
        assert pipeline.speakers == ["u1"]

    async def test_flush_after_silence(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
        submitted: list[tuple[str, int]],
    ) -> None:
        """Frames are flushed once no frame arrived for the flush delay."""
        for i in range(4):
            pipeline.push_frame("u1", bytes([i]))

        await self.settle(scheduler)

        assert decoder.batches == [[b"\x00", b"\x01", b"\x02", b"\x03"]]
        assert submitted == [("u1", 4 * FRAME_PCM_BYTES)]
        # The speaker keeps buffering after a flush
        assert pipeline.state("u1") is VoiceState.BUFFERING

    async def test_frames_reset_flush_timer(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
    ) -> None:
        """A steady stream of frames delays the flush."""
        for i in range(5):
            pipeline.push_frame("u1", bytes([i]))
            await asyncio.sleep(0.02)

        assert decoder.batches == []

        await self.settle(scheduler)
        assert len(decoder.batches) == 1
        assert len(decoder.batches[0]) == 5

    async def test_short_batch_is_discarded(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
        submitted: list[tuple[str, int]],
    ) -> None:
        """Batches below the minimum duration are decoded but never submitted."""
        pipeline.push_frame("u1", b"a")
        pipeline.push_frame("u1", b"b")

        await self.settle(scheduler)

        assert len(decoder.batches) == 1
        assert submitted == []

    async def test_frames_are_not_reused_across_flushes(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
    ) -> None:
        for i in range(3):
            pipeline.push_frame("u1", bytes([i]))
        await self.settle(scheduler)
        for i in range(3, 6):
            pipeline.push_frame("u1", bytes([i]))
        await self.settle(scheduler)

        assert decoder.batches == [
            [b"\x00", b"\x01", b"\x02"],
            [b"\x03", b"\x04", b"\x05"],
        ]

    async def test_end_stream_drains_after_grace(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        submitted: list[tuple[str, int]],
    ) -> None:
        """Stream end cancels the flush timer and drains after the grace period."""
        for i in range(3):
            pipeline.push_frame("u1", bytes([i]))

        pipeline.end_stream("u1")
        assert not scheduler.is_pending("voice:u1:flush")
        assert scheduler.is_pending("voice:u1:grace")

        await self.settle(scheduler)

        assert submitted == [("u1", 3 * FRAME_PCM_BYTES)]
        assert pipeline.state("u1") is VoiceState.IDLE
        assert pipeline.speakers == []

    async def test_frame_during_grace_resumes_buffering(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
    ) -> None:
        """Speech resuming within the grace period cancels the drain."""
        pipeline.push_frame("u1", b"a")
        pipeline.end_stream("u1")
        pipeline.push_frame("u1", b"b")

        assert not scheduler.is_pending("voice:u1:grace")
        assert scheduler.is_pending("voice:u1:flush")

        await self.settle(scheduler)
        assert decoder.batches == [[b"a", b"b"]]

    async def test_end_stream_for_unknown_speaker(
        self, pipeline: VoiceCapturePipeline, scheduler: KeyedScheduler
    ) -> None:
        pipeline.end_stream("nobody")

        assert scheduler.pending_count == 0

    async def test_abort_discards_everything(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        decoder: FakeDecoder,
        submitted: list[tuple[str, int]],
    ) -> None:
        """A stream error drops the buffer without submitting."""
        for i in range(4):
            pipeline.push_frame("u1", bytes([i]))

        pipeline.abort("u1")
        await self.settle(scheduler)

        assert decoder.batches == []
        assert submitted == []
        assert pipeline.state("u1") is VoiceState.IDLE
        assert scheduler.pending_count == 0

    @pytest.mark.parametrize("end_stream", [False, True])
    async def test_abort_during_decode_submits_nothing(
        self, scheduler: KeyedScheduler, end_stream: bool
    ) -> None:
        """A stream error while a flush or drain is decoding drops its result."""
        started = asyncio.Event()
        release = asyncio.Event()
        submitted: list[str] = []

        class BlockingDecoder:
            async def decode(self, frames: list[bytes]) -> bytes:
                started.set()
                await release.wait()
                return b"\x00" * 1000

        async def on_speech(speaker_id: str, pcm: bytes) -> None:
            submitted.append(speaker_id)

        pipeline = VoiceCapturePipeline(
            BlockingDecoder(),
            scheduler,
            on_speech,
            flush_delay_seconds=0.02,
            end_grace_seconds=0.02,
            min_pcm_bytes=1,
        )

        pipeline.push_frame("u1", b"a")
        if end_stream:
            pipeline.end_stream("u1")
        await asyncio.wait_for(started.wait(), timeout=1)

        pipeline.abort("u1")
        release.set()
        await scheduler.wait_running()

        assert submitted == []
        assert pipeline.state("u1") is VoiceState.IDLE
        assert pipeline.speakers == []

    async def test_speakers_are_independent(
        self,
        pipeline: VoiceCapturePipeline,
        scheduler: KeyedScheduler,
        submitted: list[tuple[str, int]],
    ) -> None:
        for i in range(3):
            pipeline.push_frame("u1", bytes([i]))
        for i in range(4):
            pipeline.push_frame("u2", bytes([i]))

        await self.settle(scheduler)

        assert sorted(submitted) == [("u1", 300), ("u2", 400)]

    async def test_close_cancels_all_timers(
        self, pipeline: VoiceCapturePipeline, scheduler: KeyedScheduler
    ) -> None:
        pipeline.push_frame("u1", b"a")
        pipeline.push_frame("u2", b"b")
        pipeline.end_stream("u2")

        pipeline.close()

        assert scheduler.pending_count == 0
        assert pipeline.speakers == []

    async def test_frames_during_decode_go_to_next_batch(
        self, scheduler: KeyedScheduler
    ) -> None:
        """Frames arriving while a batch is being decoded are kept for the next one."""
        release = asyncio.Event()
        batches: list[list[bytes]] = []

        class SlowDecoder:
            async def decode(self, frames: list[bytes]) -> bytes:
                batches.append(list(frames))
                await release.wait()
                return b""

        async def on_speech(speaker_id: str, pcm: bytes) -> None:
            pass

        pipeline = VoiceCapturePipeline(
            SlowDecoder(),
            scheduler,
            on_speech,
            flush_delay_seconds=0.02,
            end_grace_seconds=0.02,
            min_pcm_bytes=1,
        )

        pipeline.push_frame("u1", b"a")
        await asyncio.sleep(0.05)
        assert pipeline.state("u1") is VoiceState.FLUSHING

        pipeline.push_frame("u1", b"b")
        release.set()
        await asyncio.sleep(0.05)
        await scheduler.wait_running()

        assert batches == [[b"a"], [b"b"]]
