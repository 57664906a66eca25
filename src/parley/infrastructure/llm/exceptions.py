"""LLM-related exceptions."""


class LLMError(Exception):
    """Base exception for LLM-related errors."""


class LLMRateLimitError(LLMError):
    """Rate limit exceeded error (HTTP 429)."""


class LLMServiceUnavailableError(LLMError):
    """Service temporarily unavailable error (HTTP 503)."""


class LLMAuthenticationError(LLMError):
    """Authentication error (invalid API key, etc.)."""


def is_retryable(error: Exception) -> bool:
    """Check whether a failed request may succeed on another attempt.

    Args:
        error: Exception raised by the client.

    Returns:
        True for rate limit and service unavailable errors.
    """
    return isinstance(error, (LLMRateLimitError, LLMServiceUnavailableError))
