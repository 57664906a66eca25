"""Tests for LLMClient."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import AuthenticationError, RateLimitError

from parley.config import LLMConfig
from parley.infrastructure.llm import (
    CredentialPool,
    LLMAuthenticationError,
    LLMClient,
    LLMError,
    LLMRateLimitError,
    LLMServiceUnavailableError,
    is_retryable,
)


def make_response(content: str | None) -> MagicMock:
    """Create mock LiteLLM response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class StatusError(Exception):
    """Provider error carrying only an HTTP status code."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"status {status_code}")
        self.status_code = status_code


class TestCredentialPool:
    """CredentialPool tests."""

    def test_requires_keys(self) -> None:
        with pytest.raises(ValueError):
            CredentialPool([])

    def test_advances_before_returning(self) -> None:
        """The first call already moves past the initial cursor."""
        pool = CredentialPool(["k0", "k1", "k2"])

        assert [pool.next() for _ in range(4)] == ["k1", "k2", "k0", "k1"]

    def test_single_key(self) -> None:
        pool = CredentialPool(["only"])

        assert pool.next() == "only"
        assert pool.next() == "only"
        assert len(pool) == 1


class TestIsRetryable:
    def test_retryable_errors(self) -> None:
        assert is_retryable(LLMRateLimitError("x"))
        assert is_retryable(LLMServiceUnavailableError("x"))

    def test_non_retryable_errors(self) -> None:
        assert not is_retryable(LLMAuthenticationError("x"))
        assert not is_retryable(LLMError("x"))
        assert not is_retryable(ValueError("x"))


class TestLLMClient:
    """LLMClient tests."""

    @pytest.fixture
    def config(self) -> LLMConfig:
        """Create LLM config."""
        return LLMConfig(
            model="gemini/gemini-2.0-flash",
            api_keys=["key-a", "key-b", "key-c"],
            temperature=0.7,
            max_tokens=1000,
            max_attempts=3,
            retry_base_delay_seconds=2.0,
        )

    @pytest.fixture
    def sleep(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def client(self, config: LLMConfig, sleep: AsyncMock) -> LLMClient:
        """Create LLMClient instance."""
        return LLMClient(config, sleep=sleep)

    async def test_complete_success(self, client: LLMClient) -> None:
        """Test successful completion."""
        with patch(
            "litellm.acompletion", new=AsyncMock(return_value=make_response("Hello!"))
        ) as mock_completion:
            result = await client.complete([{"role": "user", "content": "Hello"}])

        assert result == "Hello!"
        mock_completion.assert_awaited_once()

    async def test_complete_applies_config(self, client: LLMClient) -> None:
        """Test that config parameters are applied."""
        with patch(
            "litellm.acompletion", new=AsyncMock(return_value=make_response("ok"))
        ) as mock_completion:
            await client.complete([{"role": "user", "content": "Hello"}])

        call_kwargs = mock_completion.call_args.kwargs
        assert call_kwargs["model"] == "gemini/gemini-2.0-flash"
        assert call_kwargs["temperature"] == 0.7
        assert call_kwargs["max_tokens"] == 1000
        assert call_kwargs["api_key"] == "key-b"
        assert "safety_settings" not in call_kwargs

    async def test_complete_kwargs_override(self, client: LLMClient) -> None:
        """Test that kwargs can override config."""
        with patch(
            "litellm.acompletion", new=AsyncMock(return_value=make_response("no"))
        ) as mock_completion:
            await client.complete([{"role": "user", "content": "Hello"}], max_tokens=50)

        assert mock_completion.call_args.kwargs["max_tokens"] == 50

    async def test_safety_settings_passed(self, config: LLMConfig) -> None:
        config.safety_settings = [
            {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"}
        ]
        client = LLMClient(config, sleep=AsyncMock())
        with patch(
            "litellm.acompletion", new=AsyncMock(return_value=make_response("ok"))
        ) as mock_completion:
            await client.complete([{"role": "user", "content": "Hello"}])

        assert mock_completion.call_args.kwargs["safety_settings"] == config.safety_settings

    async def test_none_content_returns_empty_string(self, client: LLMClient) -> None:
        with patch("litellm.acompletion", new=AsyncMock(return_value=make_response(None))):
            assert await client.complete([{"role": "user", "content": "Hello"}]) == ""

    async def test_retries_rate_limit_with_distinct_keys(
        self, client: LLMClient, sleep: AsyncMock
    ) -> None:
        """Every attempt uses the next key and waits attempt * base between attempts."""
        mock_completion = AsyncMock(
            side_effect=[
                RateLimitError(message="Rate limit", llm_provider="gemini", model="m"),
                StatusError(503),
                make_response("finally"),
            ]
        )
        with patch("litellm.acompletion", new=mock_completion):
            result = await client.complete([{"role": "user", "content": "Hello"}])

        assert result == "finally"
        keys = [call.kwargs["api_key"] for call in mock_completion.call_args_list]
        assert keys == ["key-b", "key-c", "key-a"]
        assert [call.args[0] for call in sleep.call_args_list] == [2.0, 4.0]

    async def test_retries_exhausted(self, client: LLMClient, sleep: AsyncMock) -> None:
        mock_completion = AsyncMock(side_effect=StatusError(429))
        with patch("litellm.acompletion", new=mock_completion):
            with pytest.raises(LLMRateLimitError):
                await client.complete([{"role": "user", "content": "Hello"}])

        assert mock_completion.await_count == 3
        assert sleep.await_count == 2

    async def test_authentication_error_not_retried(
        self, client: LLMClient, sleep: AsyncMock
    ) -> None:
        mock_completion = AsyncMock(
            side_effect=AuthenticationError(
                message="Invalid API key",
                llm_provider="openai",
                model="gpt-4o",
            )
        )
        with patch("litellm.acompletion", new=mock_completion):
            with pytest.raises(LLMAuthenticationError):
                await client.complete([{"role": "user", "content": "Hello"}])

        assert mock_completion.await_count == 1
        sleep.assert_not_awaited()

    async def test_generic_error_not_retried(self, client: LLMClient) -> None:
        mock_completion = AsyncMock(side_effect=Exception("boom"))
        with patch("litellm.acompletion", new=mock_completion):
            with pytest.raises(LLMError) as exc_info:
                await client.complete([{"role": "user", "content": "Hello"}])

        assert type(exc_info.value) is LLMError
        assert mock_completion.await_count == 1

    async def test_status_503_maps_to_service_unavailable(self, config: LLMConfig) -> None:
        config.max_attempts = 1
        client = LLMClient(config, sleep=AsyncMock())
        with patch("litellm.acompletion", new=AsyncMock(side_effect=StatusError(503))):
            with pytest.raises(LLMServiceUnavailableError):
                await client.complete([{"role": "user", "content": "Hello"}])
