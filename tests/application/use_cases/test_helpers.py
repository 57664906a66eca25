"""Tests for use case helper functions."""

import base64
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from parley.application.use_cases.helpers import (
    AttachmentProcessor,
    messages_to_chat,
    opinion_context,
    read_and_type,
    reply_excerpt,
    turns_to_messages,
)
from parley.domain.entities import Attachment, Role, Turn, User
from parley.infrastructure.http.downloader import DownloadError


class TestConversions:
    def test_turns_to_messages(self, bot_user_id: str) -> None:
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        turns = [
            Turn(content="hi", author_id="1", timestamp=now),
            Turn(content="hello", author_id=bot_user_id, timestamp=now),
            Turn(content="how are you", author_id="2", timestamp=now),
        ]

        result = turns_to_messages(turns, bot_user_id)

        assert [m.role for m in result] == [Role.USER, Role.MODEL, Role.USER]
        assert [m.text for m in result] == ["hi", "hello", "how are you"]

    def test_messages_to_chat(self, make_message, bot_user_id: str) -> None:
        bot = User(id=bot_user_id, name="parley", is_bot=True)
        messages = [make_message("question"), make_message("answer", user=bot)]

        result = messages_to_chat(messages, bot_user_id)

        assert [m.role for m in result] == [Role.USER, Role.MODEL]


class TestReplyExcerpt:
    def test_short_message(self, make_message) -> None:
        assert reply_excerpt(make_message("see you")) == '(In reply to alice (1): "see you")'

    def test_truncated(self, make_message) -> None:
        result = reply_excerpt(make_message("abcdef"), limit=3)

        assert result == '(In reply to alice (1): "abc...")'


def test_opinion_context() -> None:
    user, model = opinion_context("bob", "2", "kind")

    assert user.role is Role.USER
    assert user.text == 'My previous opinion about bob (2) is: "kind"'
    assert model.role is Role.MODEL
    assert model.text == "Understood, considering my previous thoughts on bob."


async def test_read_and_type(messaging_service: AsyncMock, no_sleep: AsyncMock) -> None:
    async def work() -> str:
        return "done"

    result = await read_and_type(
        messaging_service, "100", work(), read_delay=2.0, typing_seconds=3.0, sleep=no_sleep
    )

    assert result == "done"
    assert no_sleep.await_args_list == [call(2.0), call(3.0)]
    messaging_service.send_typing.assert_awaited_once_with("100")


class TestAttachmentProcessor:
    """AttachmentProcessor tests."""

    @pytest.fixture
    def downloader(self) -> MagicMock:
        async def download(url: str, destination: Path) -> Path:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(b"image-bytes")
            return destination

        mock = MagicMock()
        mock.download = AsyncMock(side_effect=download)
        return mock

    @pytest.fixture
    def processor(self, downloader: MagicMock, tmp_path: Path) -> AttachmentProcessor:
        return AttachmentProcessor(downloader, tmp_path / "scratch", ["image/png"])

    async def test_supported_attachment(
        self, processor: AttachmentProcessor, tmp_path: Path
    ) -> None:
        attachment = Attachment("cat.png", "https://cdn/cat.png", "image/png")

        parts = await processor.to_parts([attachment])

        assert len(parts) == 1
        assert parts[0].mime_type == "image/png"
        assert base64.b64decode(parts[0].data or "") == b"image-bytes"
        # scratch files are removed after reading
        assert list((tmp_path / "scratch").iterdir()) == []

    async def test_unsupported_attachments_skipped(
        self, processor: AttachmentProcessor, downloader: MagicMock
    ) -> None:
        attachments = [
            Attachment("a.zip", "https://cdn/a.zip", "application/zip"),
            Attachment("unknown", "https://cdn/unknown"),
        ]

        assert await processor.to_parts(attachments) == []
        downloader.download.assert_not_awaited()

    async def test_download_failure_skipped(
        self, processor: AttachmentProcessor, downloader: MagicMock
    ) -> None:
        downloader.download.side_effect = DownloadError("404")
        attachment = Attachment("cat.png", "https://cdn/cat.png", "image/png")

        assert await processor.to_parts([attachment]) == []

    async def test_same_file_names_do_not_collide(
        self, processor: AttachmentProcessor, downloader: MagicMock
    ) -> None:
        attachment = Attachment("cat.png", "https://cdn/cat.png", "image/png")

        parts = await processor.to_parts([attachment, attachment])

        assert len(parts) == 2
        destinations = [c.args[1] for c in downloader.download.await_args_list]
        assert destinations[0] != destinations[1]
