"""tests/conftest.py

Pytest configuration and shared fixtures for the polychat test suite.
"""

from __future__ import annotations

# Standard Library
from unittest.mock import Mock

# Third-Party Libraries
import pytest

# Local Modules
from polychat.chat import ChatOrchestrator
from polychat.config import ChatSettings
from polychat.models import OrganicResult, SearchEvidence
from polychat.providers import ModelDispatcher
from polychat.search import SearchProvider

MODEL_REPLY = "Paris is the capital of France. See https://en.wikipedia.org/wiki/Paris"


@pytest.fixture
def settings() -> ChatSettings:
    """Settings isolated from the developer's environment and .env file."""
    return ChatSettings(
        _env_file=None,
        llm_provider="openai",
        openai_api_key="sk-test",
        anthropic_api_key="ak-test",
        openrouter_api_key="or-test",
        serpapi_api_key="serp-test",
        google_search_api_key="g-test",
        google_cse_id="cse-test",
    )


@pytest.fixture
def sample_messages() -> list[dict[str, str]]:
    """Create sample message history for testing.

    Returns:
        List of sample message dictionaries.
    """
    return [
        {"role": "user", "content": "Hello!"},
        {"role": "assistant", "content": "Hi there! How can I help you?"},
        {"role": "user", "content": "What's the weather like?"},
        {
            "role": "assistant",
            "content": "I don't have real-time weather data, but I can help you find it!",
        },
    ]


@pytest.fixture
def sample_evidence() -> SearchEvidence:
    return SearchEvidence(
        query="What is the capital of France?",
        organic_results=[
            OrganicResult(
                position=1,
                title="Paris - Wikipedia",
                link="https://en.wikipedia.org/wiki/Paris",
                snippet="Paris is the capital and largest city of France.",
                source="en.wikipedia.org",
            ),
            OrganicResult(
                position=2,
                title="France facts",
                link="https://example.com/france",
                snippet="Facts about France.",
            ),
        ],
    )


@pytest.fixture
def mock_dispatcher() -> Mock:
    """A dispatcher double that always answers with ``MODEL_REPLY``."""
    dispatcher = Mock(spec=ModelDispatcher)
    dispatcher.dispatch.return_value = MODEL_REPLY
    return dispatcher


@pytest.fixture
def mock_search_provider(sample_evidence: SearchEvidence) -> Mock:
    provider = Mock(spec=SearchProvider)
    provider.search.return_value = sample_evidence
    return provider


@pytest.fixture
def orchestrator(mock_dispatcher: Mock, mock_search_provider: Mock) -> ChatOrchestrator:
    return ChatOrchestrator(
        dispatcher=mock_dispatcher,
        provider_id="openai",
        search_provider=mock_search_provider,
    )
