"""Common fixtures for LLM infrastructure tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from parley.infrastructure.llm import LLMClient


@pytest.fixture
def llm_client() -> MagicMock:
    """Create a mock LLMClient."""
    client = MagicMock(spec=LLMClient)
    client.complete = AsyncMock(return_value="Hello there!")
    return client
