"""polychat/providers.py

Model adapters and the dispatcher that routes a prompt to exactly one of them.

Every adapter takes the provider-agnostic message sequence, reshapes it for
its backend, attaches fixed invocation parameters, and returns plain text.
Anything that goes wrong inside an adapter surfaces as
``ProviderUnavailableError`` carrying the adapter's name. There is no fallback
between providers: the dispatcher either finds the configured adapter or
fails hard.
"""

from __future__ import annotations

# Standard Library
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Final

# Third-Party Libraries
import httpx
from ollama import Client as OllamaClient
from ollama import ResponseError

# Local Modules
from polychat.config import ChatSettings
from polychat.errors import ProviderUnavailableError, UnknownProviderError
from polychat.models import PromptMessage, Role

logger = logging.getLogger(__name__)

OPENAI_URL: Final[str] = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL: Final[str] = "https://api.anthropic.com/v1/messages"
OPENROUTER_URL: Final[str] = "https://openrouter.ai/api/v1/chat/completions"
ANTHROPIC_VERSION: Final[str] = "2023-06-01"

DEFAULT_TEMPERATURE: Final[float] = 0.7
DEFAULT_MAX_TOKENS: Final[int] = 1000

# Failures converted to ProviderUnavailableError at the adapter boundary.
_ADAPTER_FAILURES: Final[tuple[type[BaseException], ...]] = (
    httpx.HTTPError,
    ResponseError,
    ConnectionError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    AttributeError,
)


def _wire_messages(messages: Sequence[PromptMessage]) -> list[dict[str, str]]:
    return [message.to_dict() for message in messages]


class ModelAdapter(ABC):
    """One language-model backend behind a uniform ``complete`` call."""

    name: str = "model"

    def complete(self, messages: Sequence[PromptMessage]) -> str:
        """Send ``messages`` to the backend and return the reply text.

        Args:
            messages: The full prompt, oldest first.

        Returns:
            The backend's single best candidate text.

        Raises:
            ProviderUnavailableError: On any transport, status, or envelope
                failure.
        """
        logger.info("[%s] sending %d messages", self.name, len(messages))
        try:
            text = self._invoke(messages)
        except _ADAPTER_FAILURES as exc:
            logger.error("[%s] API error: %s", self.name, exc, exc_info=True)
            raise ProviderUnavailableError(self.name) from exc

        if not isinstance(text, str):
            logger.error("[%s] reply content is %s, not text", self.name, type(text).__name__)
            raise ProviderUnavailableError(self.name)
        if not text:
            logger.warning("[%s] empty reply", self.name)

        logger.info("[%s] reply length=%d chars", self.name, len(text))
        return text

    @abstractmethod
    def _invoke(self, messages: Sequence[PromptMessage]) -> Any:
        """Perform the call and return the extracted reply content."""


class HttpModelAdapter(ModelAdapter):
    """Adapter for backends reached by a single JSON POST."""

    url: str = ""

    def __init__(self, api_key: str, client: httpx.Client) -> None:
        self.api_key = api_key
        self.client = client

    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    def _payload(self, messages: Sequence[PromptMessage]) -> dict[str, Any]: ...

    @abstractmethod
    def _extract(self, data: Any) -> Any: ...

    def _invoke(self, messages: Sequence[PromptMessage]) -> Any:
        if not self.api_key:
            raise ValueError(f"no API key configured for {self.name}")
        response = self.client.post(
            self.url, json=self._payload(messages), headers=self._headers()
        )
        response.raise_for_status()
        return self._extract(response.json())


class OpenAIAdapter(HttpModelAdapter):
    """OpenAI chat completions; accepts the message sequence unmodified."""

    name = "openai"
    url = OPENAI_URL
    model = "gpt-4o"
    temperature: float | None = DEFAULT_TEMPERATURE
    max_tokens: int | None = DEFAULT_MAX_TOKENS

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: Sequence[PromptMessage]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": _wire_messages(messages),
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload

    def _extract(self, data: Any) -> Any:
        return data["choices"][0]["message"]["content"]


class OpenRouterAdapter(OpenAIAdapter):
    """Any OpenRouter-hosted model, spoken to in the OpenAI wire format."""

    name = "openrouter"
    url = OPENROUTER_URL
    temperature = None
    max_tokens = None

    def __init__(
        self,
        api_key: str,
        client: httpx.Client,
        *,
        model: str,
        name: str | None = None,
        site_url: str = "",
        site_name: str = "",
    ) -> None:
        super().__init__(api_key, client)
        self.model = model
        if name:
            self.name = name
        self.site_url = site_url
        self.site_name = site_name

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers


class PerplexityAdapter(OpenRouterAdapter):
    """Perplexity deep-research model served through OpenRouter."""

    temperature = DEFAULT_TEMPERATURE
    max_tokens = DEFAULT_MAX_TOKENS

    def __init__(
        self, api_key: str, client: httpx.Client, *, site_url: str = "", site_name: str = ""
    ) -> None:
        super().__init__(
            api_key,
            client,
            model="perplexity/sonar-deep-research",
            name="perplexity",
            site_url=site_url,
            site_name=site_name,
        )


class AnthropicAdapter(HttpModelAdapter):
    """Anthropic messages API.

    The first system message becomes the top-level ``system`` field and only
    user/assistant turns are sent as the conversation body; later system
    messages are not forwarded.
    """

    name = "anthropic"
    url = ANTHROPIC_URL
    model = "claude-3-opus-20240229"
    max_tokens = DEFAULT_MAX_TOKENS

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _payload(self, messages: Sequence[PromptMessage]) -> dict[str, Any]:
        system = next((m.content for m in messages if m.role == Role.SYSTEM), "")
        return {
            "model": self.model,
            "system": system,
            "messages": _wire_messages([m for m in messages if m.role != Role.SYSTEM]),
            "max_tokens": self.max_tokens,
        }

    def _extract(self, data: Any) -> Any:
        return data["content"][0]["text"]


class OllamaAdapter(ModelAdapter):
    """Local model served by Ollama; accepts the message sequence unmodified."""

    name = "ollama"

    def __init__(self, client: OllamaClient, model: str) -> None:
        self.client = client
        self.model = model

    def _invoke(self, messages: Sequence[PromptMessage]) -> Any:
        response = self.client.chat(
            model=self.model,
            messages=_wire_messages(messages),
            options={"temperature": DEFAULT_TEMPERATURE, "num_predict": DEFAULT_MAX_TOKENS},
        )
        raw_msg = response["message"]
        # Real clients return pydantic models; test doubles return dicts.
        if isinstance(raw_msg, dict):
            return raw_msg["content"]
        return raw_msg.content


# ---------------------------------------------------------------------------
# Adapter registry
# ---------------------------------------------------------------------------

AdapterFactory = Callable[[ChatSettings, httpx.Client], ModelAdapter]


def _openrouter(name: str, model: str | None = None) -> AdapterFactory:
    def factory(settings: ChatSettings, client: httpx.Client) -> ModelAdapter:
        return OpenRouterAdapter(
            settings.openrouter_api_key,
            client,
            model=model or settings.openrouter_model,
            name=name,
            site_url=settings.openrouter_site_url,
            site_name=settings.openrouter_site_name,
        )

    return factory


ADAPTER_FACTORIES: Final[dict[str, AdapterFactory]] = {
    "openai": lambda s, c: OpenAIAdapter(s.openai_api_key, c),
    "anthropic": lambda s, c: AnthropicAdapter(s.anthropic_api_key, c),
    "perplexity": lambda s, c: PerplexityAdapter(
        s.openrouter_api_key, c, site_url=s.openrouter_site_url, site_name=s.openrouter_site_name
    ),
    "openrouter": _openrouter("openrouter"),
    "sonar": _openrouter("sonar", "perplexity/sonar"),
    "qwen": _openrouter("qwen", "qwen/qwen3-0.6b-04-28:free"),
    "ollama": lambda s, c: OllamaAdapter(
        OllamaClient(host=s.ollama_host, timeout=s.request_timeout), s.ollama_model
    ),
}


class ModelDispatcher:
    """Routing table from provider id to adapter. No cross-provider fallback."""

    def __init__(self, adapters: Mapping[str, ModelAdapter]) -> None:
        self.adapters: dict[str, ModelAdapter] = dict(adapters)

    @classmethod
    def from_settings(
        cls, settings: ChatSettings, client: httpx.Client | None = None
    ) -> ModelDispatcher:
        """Build a dispatcher holding the configured provider's adapter.

        Raises:
            UnknownProviderError: If ``settings.llm_provider`` names no adapter.
        """
        provider = settings.llm_provider
        factory = ADAPTER_FACTORIES.get(provider)
        if factory is None:
            raise UnknownProviderError(provider)

        client = client or httpx.Client(timeout=settings.request_timeout)
        adapter = factory(settings, client)
        if isinstance(adapter, HttpModelAdapter) and not adapter.api_key:
            logger.warning("[dispatcher] provider %r has no API key configured", provider)
        logger.info("[dispatcher] provider=%s adapter=%s", provider, type(adapter).__name__)
        return cls({provider: adapter})

    def dispatch(self, provider_id: str, messages: Sequence[PromptMessage]) -> str:
        """Send ``messages`` to the adapter registered as ``provider_id``.

        Raises:
            UnknownProviderError: If no adapter is registered under that id.
            ProviderUnavailableError: If the adapter's backend call fails.
        """
        adapter = self.adapters.get(provider_id)
        if adapter is None:
            raise UnknownProviderError(provider_id)
        return adapter.complete(messages)
