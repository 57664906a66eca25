"""LLM integration."""

from parley.infrastructure.llm.client import CredentialPool, LLMClient
from parley.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMError,
    LLMRateLimitError,
    LLMServiceUnavailableError,
    is_retryable,
)
from parley.infrastructure.llm.generator import (
    APOLOGY,
    LiteLLMGenerationClient,
    to_litellm_message,
)
from parley.infrastructure.llm.templates import render_prompt

__all__ = [
    "APOLOGY",
    "CredentialPool",
    "LLMAuthenticationError",
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMServiceUnavailableError",
    "LiteLLMGenerationClient",
    "is_retryable",
    "render_prompt",
    "to_litellm_message",
]
