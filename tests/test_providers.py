"""tests/test_providers.py

Unit tests for model adapters and the dispatcher (polychat/providers.py).
"""

from __future__ import annotations

# Standard Library
from unittest.mock import Mock, patch

# Third-Party Libraries
import httpx
import pytest

# Local Modules
from polychat.config import ChatSettings
from polychat.errors import ConfigurationError, ProviderUnavailableError, UnknownProviderError
from polychat.models import Message, Role
from polychat.providers import (
    AnthropicAdapter,
    ModelDispatcher,
    OllamaAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
    PerplexityAdapter,
)
from tests.http_helpers import mock_client, request_json

PROMPT = [
    Message(Role.SYSTEM, "You are a helpful multilingual assistant."),
    Message(Role.SYSTEM, "The user's location is: 1, 2."),
    Message(Role.USER, "Hello"),
    Message(Role.ASSISTANT, "Hi!"),
    Message(Role.USER, "What is the capital of France?"),
    Message(Role.SYSTEM, 'Web search results for "capital": {}'),
]

_OPENAI_REPLY = {"choices": [{"message": {"role": "assistant", "content": "Paris."}}]}
_ANTHROPIC_REPLY = {"content": [{"type": "text", "text": "Paris, bien sûr."}]}


def _capture(reply: httpx.Response, calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return reply

    return handler


class TestOpenAIAdapter:
    """Test suite for the OpenAI adapter."""

    def test_sends_sequence_unmodified(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_OPENAI_REPLY), calls))

        text = OpenAIAdapter("sk-test", client).complete(PROMPT)

        assert text == "Paris."
        request = calls[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = request_json(request)
        assert body["model"] == "gpt-4o"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 1000
        assert body["messages"] == [m.to_dict() for m in PROMPT]

    @pytest.mark.parametrize(
        "reply",
        [
            httpx.Response(500, json={"error": "boom"}),
            httpx.Response(401, json={"error": "bad key"}),
            httpx.Response(200, json={"choices": []}),
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"choices": [{"message": {"content": None}}]}),
        ],
    )
    def test_failures_become_provider_unavailable(self, reply: httpx.Response) -> None:
        client = mock_client(_capture(reply, []))

        with pytest.raises(ProviderUnavailableError) as exc_info:
            OpenAIAdapter("sk-test", client).complete(PROMPT)

        assert exc_info.value.provider == "openai"

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderUnavailableError):
            OpenAIAdapter("sk-test", mock_client(handler)).complete(PROMPT)

    def test_missing_key_fails_without_network(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_OPENAI_REPLY), calls))

        with pytest.raises(ProviderUnavailableError):
            OpenAIAdapter("", client).complete(PROMPT)
        assert calls == []


class TestAnthropicAdapter:
    """Test suite for the Anthropic adapter."""

    def test_hoists_first_system_message(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_ANTHROPIC_REPLY), calls))

        text = AnthropicAdapter("ak-test", client).complete(PROMPT)

        assert text == "Paris, bien sûr."
        request = calls[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "ak-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = request_json(request)
        assert body["model"] == "claude-3-opus-20240229"
        assert body["max_tokens"] == 1000
        assert body["system"] == "You are a helpful multilingual assistant."
        assert body["messages"] == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi!"},
            {"role": "user", "content": "What is the capital of France?"},
        ]

    def test_no_system_message(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_ANTHROPIC_REPLY), calls))

        AnthropicAdapter("ak-test", client).complete([Message(Role.USER, "hi")])

        assert request_json(calls[0])["system"] == ""

    def test_empty_content_list(self) -> None:
        client = mock_client(_capture(httpx.Response(200, json={"content": []}), []))
        with pytest.raises(ProviderUnavailableError) as exc_info:
            AnthropicAdapter("ak-test", client).complete(PROMPT)
        assert exc_info.value.provider == "anthropic"


class TestOpenRouterAdapters:
    """Test suite for OpenRouter-hosted adapters."""

    def test_perplexity_parameters(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_OPENAI_REPLY), calls))

        adapter = PerplexityAdapter("or-key", client, site_url="https://app.test", site_name="app")
        assert adapter.complete(PROMPT) == "Paris."

        request = calls[0]
        assert str(request.url) == "https://openrouter.ai/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer or-key"
        assert request.headers["HTTP-Referer"] == "https://app.test"
        assert request.headers["X-Title"] == "app"
        body = request_json(request)
        assert body["model"] == "perplexity/sonar-deep-research"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 1000

    def test_generic_model_sends_no_sampling_overrides(self) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(_capture(httpx.Response(200, json=_OPENAI_REPLY), calls))

        adapter = OpenRouterAdapter("or-key", client, model="qwen/qwen3-0.6b-04-28:free", name="qwen")
        adapter.complete(PROMPT)

        body = request_json(calls[0])
        assert body == {
            "model": "qwen/qwen3-0.6b-04-28:free",
            "messages": [m.to_dict() for m in PROMPT],
        }
        assert "HTTP-Referer" not in calls[0].headers

    def test_error_carries_adapter_name(self) -> None:
        client = mock_client(_capture(httpx.Response(502), []))
        adapter = OpenRouterAdapter("or-key", client, model="perplexity/sonar", name="sonar")

        with pytest.raises(ProviderUnavailableError) as exc_info:
            adapter.complete(PROMPT)
        assert exc_info.value.provider == "sonar"
        assert str(exc_info.value) == "Failed to get response from sonar"


class TestOllamaAdapter:
    """Test suite for the local Ollama adapter."""

    def test_chat_call(self) -> None:
        client = Mock()
        client.chat.return_value = {"message": {"role": "assistant", "content": "Bonjour"}}

        text = OllamaAdapter(client, "llama3.1").complete(PROMPT)

        assert text == "Bonjour"
        kwargs = client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3.1"
        assert kwargs["messages"] == [m.to_dict() for m in PROMPT]

    def test_connection_error(self) -> None:
        client = Mock()
        client.chat.side_effect = ConnectionError("Ollama not running")

        with pytest.raises(ProviderUnavailableError) as exc_info:
            OllamaAdapter(client, "llama3.1").complete(PROMPT)
        assert exc_info.value.provider == "ollama"

    def test_unexpected_message_shape(self) -> None:
        client = Mock()
        client.chat.return_value = {"message": object()}

        with pytest.raises(ProviderUnavailableError) as exc_info:
            OllamaAdapter(client, "llama3.1").complete(PROMPT)
        assert exc_info.value.provider == "ollama"


class TestModelDispatcher:
    """Test suite for provider routing."""

    def test_routes_to_registered_adapter(self) -> None:
        openai = Mock()
        openai.complete.return_value = "from openai"
        anthropic = Mock()
        dispatcher = ModelDispatcher({"openai": openai, "anthropic": anthropic})

        assert dispatcher.dispatch("openai", PROMPT) == "from openai"
        openai.complete.assert_called_once_with(PROMPT)
        anthropic.complete.assert_not_called()

    def test_unknown_provider_is_hard_failure(self) -> None:
        dispatcher = ModelDispatcher({"openai": Mock()})
        with pytest.raises(UnknownProviderError):
            dispatcher.dispatch("gemini", PROMPT)

    def test_no_fallback_between_providers(self) -> None:
        failing = Mock()
        failing.complete.side_effect = ProviderUnavailableError("openai")
        other = Mock()
        dispatcher = ModelDispatcher({"openai": failing, "anthropic": other})

        with pytest.raises(ProviderUnavailableError):
            dispatcher.dispatch("openai", PROMPT)
        other.complete.assert_not_called()

    @pytest.mark.parametrize(
        "provider,adapter_type",
        [
            ("openai", OpenAIAdapter),
            ("anthropic", AnthropicAdapter),
            ("perplexity", PerplexityAdapter),
            ("openrouter", OpenRouterAdapter),
            ("sonar", OpenRouterAdapter),
            ("qwen", OpenRouterAdapter),
        ],
    )
    def test_from_settings_builds_configured_adapter(
        self, settings: ChatSettings, provider: str, adapter_type: type
    ) -> None:
        settings.llm_provider = provider
        dispatcher = ModelDispatcher.from_settings(settings, client=mock_client(lambda r: httpx.Response(200)))

        assert list(dispatcher.adapters) == [provider]
        assert isinstance(dispatcher.adapters[provider], adapter_type)

    def test_from_settings_model_names(self, settings: ChatSettings) -> None:
        client = mock_client(lambda r: httpx.Response(200))
        settings.llm_provider = "qwen"
        assert ModelDispatcher.from_settings(settings, client).adapters["qwen"].model == (
            "qwen/qwen3-0.6b-04-28:free"
        )
        settings.llm_provider = "openrouter"
        settings.openrouter_model = "mistralai/mistral-7b-instruct"
        assert ModelDispatcher.from_settings(settings, client).adapters["openrouter"].model == (
            "mistralai/mistral-7b-instruct"
        )

    @patch("polychat.providers.OllamaClient")
    def test_from_settings_ollama(self, mock_client_class: Mock, settings: ChatSettings) -> None:
        settings.llm_provider = "ollama"
        dispatcher = ModelDispatcher.from_settings(settings)

        adapter = dispatcher.adapters["ollama"]
        assert isinstance(adapter, OllamaAdapter)
        assert adapter.model == settings.ollama_model
        mock_client_class.assert_called_once_with(
            host=settings.ollama_host, timeout=settings.request_timeout
        )

    def test_from_settings_unknown_provider(self, settings: ChatSettings) -> None:
        settings.llm_provider = "gemini"
        with pytest.raises(ConfigurationError):
            ModelDispatcher.from_settings(settings)
