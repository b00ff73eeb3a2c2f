"""polychat/config.py

Runtime configuration loaded once at startup from environment variables
and an optional ``.env`` file.
"""

from __future__ import annotations

# Standard Library
from functools import lru_cache

# Third-Party Libraries
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatSettings(BaseSettings):
    """Process-wide settings for the chat service.

    Attributes:
        llm_provider: Adapter id used for every model call (``openai``,
            ``anthropic``, ``perplexity``, ``openrouter``, ``sonar``, ``qwen``,
            ``ollama``).
        openai_api_key: Bearer key for the OpenAI adapter.
        anthropic_api_key: Key for the Anthropic adapter.
        openrouter_api_key: Bearer key for OpenRouter-hosted adapters.
            ``PERPLEXITY_KEY`` is accepted as well.
        openrouter_model: Model used by the generic ``openrouter`` adapter.
        openrouter_site_url: Sent as ``HTTP-Referer`` to OpenRouter.
        openrouter_site_name: Sent as ``X-Title`` to OpenRouter.
        ollama_host: Base URL of a local Ollama server.
        ollama_model: Model tag used by the ``ollama`` adapter.
        serpapi_api_key: Key for the primary search backend.
        google_search_api_key: Key for the fallback search backend.
        google_cse_id: Custom Search Engine id for the fallback backend.
        max_history_length: Exchanges kept per session (turns = 2x this).
        max_sessions: Sessions retained before the least recently used is evicted.
        request_timeout: Seconds before a model call is abandoned.
        search_timeout: Seconds before a search call is abandoned.
        api_host: Bind address for the HTTP server.
        api_port: Bind port for the HTTP server.
        log_level: Root logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    llm_provider: str = Field("perplexity", description="Model adapter id.")
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    openrouter_api_key: str = Field(
        "",
        validation_alias=AliasChoices(
            "openrouter_api_key", "OPENROUTER_API_KEY", "PERPLEXITY_KEY"
        ),
    )
    openrouter_model: str = "perplexity/sonar"
    openrouter_site_url: str = ""
    openrouter_site_name: str = "polychat"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b-instruct-q4_K_M"
    serpapi_api_key: str = ""
    google_search_api_key: str = ""
    google_cse_id: str = ""
    max_history_length: int = Field(10, ge=1)
    max_sessions: int = Field(1000, ge=1)
    request_timeout: float = Field(60.0, gt=0)
    search_timeout: float = Field(10.0, gt=0)
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> ChatSettings:
    return ChatSettings()
