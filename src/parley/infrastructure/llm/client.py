"""LLM client wrapper."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import litellm
from litellm.exceptions import (
    AuthenticationError,
    RateLimitError,
    ServiceUnavailableError,
)

from parley.config import LLMConfig
from parley.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMError,
    LLMRateLimitError,
    LLMServiceUnavailableError,
    is_retryable,
)

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class CredentialPool:
    """Round-robin pool of API keys.

    The cursor advances on every call to :meth:`next`, including the first one,
    so consecutive attempts always use different keys when more than one is
    configured.
    """

    def __init__(self, api_keys: list[str]) -> None:
        if not api_keys:
            raise ValueError("At least one API key must be provided")
        self._api_keys = list(api_keys)
        self._index = 0

    def __len__(self) -> int:
        return len(self._api_keys)

    def next(self) -> str:
        """Advance the cursor and return the selected key."""
        self._index = (self._index + 1) % len(self._api_keys)
        logger.debug("Cycling to API key index: %d", self._index)
        return self._api_keys[self._index]


class LLMClient:
    """LiteLLM wrapper client.

    This class provides a simplified interface to LiteLLM,
    applying configuration, rotating credentials and retrying
    transient failures.
    """

    def __init__(
        self,
        config: LLMConfig,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: LLM configuration (model, keys, retry policy, etc.).
            sleep: Coroutine used for backoff waits.
        """
        self._config = config
        self._credentials = CredentialPool(config.api_keys)
        self._sleep = sleep

    async def complete(
        self,
        messages: list[dict[str, Any]],
        **kwargs: Any,
    ) -> str:
        """Execute chat completion with retry.

        Rate limit and service unavailable errors are retried up to
        ``max_attempts`` in total, waiting ``attempt * retry_base_delay_seconds``
        between attempts. Every attempt uses the next key of the pool.

        Args:
            messages: OpenAI-format message list.
                [{"role": "system", "content": "..."}, ...]
            **kwargs: Additional parameters (override config).

        Returns:
            Generated text (empty string when the model returned no content).

        Raises:
            LLMAuthenticationError: Invalid API key.
            LLMRateLimitError: Rate limit exceeded on the last attempt.
            LLMServiceUnavailableError: Service unavailable on the last attempt.
            LLMError: Other API errors.
        """
        attempt = 0
        while True:
            attempt += 1
            api_key = self._credentials.next()
            try:
                return await self._complete_once(messages, api_key, **kwargs)
            except LLMError as e:
                if not is_retryable(e):
                    logger.error("Non-retryable LLM error on attempt %d: %s", attempt, e)
                    raise
                if attempt >= self._config.max_attempts:
                    logger.error("LLM retries exhausted after %d attempts", attempt)
                    raise
                delay = attempt * self._config.retry_base_delay_seconds
                logger.warning(
                    "LLM attempt %d/%d failed, retrying in %.1fs: %s",
                    attempt,
                    self._config.max_attempts,
                    delay,
                    e,
                )
                await self._sleep(delay)

    async def _complete_once(
        self,
        messages: list[dict[str, Any]],
        api_key: str,
        **kwargs: Any,
    ) -> str:
        params: dict[str, Any] = {
            "model": self._config.model,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "messages": messages,
            "api_key": api_key,
        }
        if self._config.safety_settings:
            params["safety_settings"] = self._config.safety_settings
        params.update(kwargs)

        logger.debug("LLM request: model=%s", params["model"])

        try:
            response = await litellm.acompletion(**params)
        except AuthenticationError as e:
            logger.error("LLM authentication error: %s", e)
            raise LLMAuthenticationError(str(e)) from e
        except RateLimitError as e:
            logger.warning("LLM rate limit exceeded: %s", e)
            raise LLMRateLimitError(str(e)) from e
        except ServiceUnavailableError as e:
            logger.warning("LLM service unavailable: %s", e)
            raise LLMServiceUnavailableError(str(e)) from e
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            if status_code == 429:
                raise LLMRateLimitError(str(e)) from e
            if status_code == 503:
                raise LLMServiceUnavailableError(str(e)) from e
            logger.error("LLM error: %s", e)
            raise LLMError(str(e)) from e

        content = response.choices[0].message.content
        logger.debug("LLM response received")
        return content or ""
