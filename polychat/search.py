"""polychat/search.py

Two-tier web search used to ground replies.

The primary tier is SerpAPI; on any failure the Google Custom Search API is
tried and its items are reshaped into SerpAPI's ``organic_results`` form. If
both tiers fail the caller receives the error variant of ``SearchEvidence``
instead of an exception, which means "no evidence".
"""

from __future__ import annotations

# Standard Library
import logging
from typing import Any, Final, Protocol

# Third-Party Libraries
import httpx

# Local Modules
from polychat.config import ChatSettings
from polychat.errors import SearchBackendError
from polychat.models import OrganicResult, SearchEvidence

logger = logging.getLogger(__name__)

MAX_RESULTS: Final[int] = 5
SEARCH_FAILED: Final[str] = "Failed to perform web search"

SERPAPI_URL: Final[str] = "https://serpapi.com/search"
GOOGLE_CSE_URL: Final[str] = "https://www.googleapis.com/customsearch/v1"

# Biases result locality only; unmapped languages search the US index.
_LANGUAGE_TO_COUNTRY: Final[dict[str, str]] = {
    "en": "us",
    "es": "es",
    "fr": "fr",
    "de": "de",
    "it": "it",
    "pt": "pt",
    "zh": "cn",
    "ja": "jp",
    "ru": "ru",
}


def country_for_language(language: str) -> str:
    return _LANGUAGE_TO_COUNTRY.get(language, "us")


class SearchBackend(Protocol):
    name: str

    def search(self, query: str, language: str) -> SearchEvidence: ...


def _get_json(
    client: httpx.Client, backend: str, url: str, params: dict[str, Any]
) -> dict[str, Any]:
    """GET ``url`` and return its JSON object body, or raise SearchBackendError."""
    try:
        response = client.get(url, params=params)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as exc:
        raise SearchBackendError(backend, str(exc)) from exc
    except ValueError as exc:
        raise SearchBackendError(backend, f"invalid JSON body: {exc}") from exc

    if not isinstance(data, dict):
        raise SearchBackendError(backend, f"unexpected body type {type(data).__name__}")
    return data


def _optional_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


class SerpApiBackend:
    """Primary search tier backed by serpapi.com."""

    name = "serpapi"

    def __init__(self, api_key: str, client: httpx.Client) -> None:
        self.api_key = api_key
        self.client = client

    def search(self, query: str, language: str) -> SearchEvidence:
        if not self.api_key:
            raise SearchBackendError(self.name, "SERPAPI_API_KEY not configured")

        params = {
            "api_key": self.api_key,
            "q": query,
            "hl": language,
            "gl": country_for_language(language),
            "num": MAX_RESULTS,
        }
        data = _get_json(self.client, self.name, SERPAPI_URL, params)

        raw_results = data.get("organic_results") or []
        if not isinstance(raw_results, list):
            raise SearchBackendError(self.name, "organic_results is not a list")

        results = [
            OrganicResult(
                position=item.get("position"),
                title=item.get("title", ""),
                link=item.get("link", ""),
                snippet=item.get("snippet", ""),
                source=item.get("source") or item.get("displayed_link"),
            )
            for item in raw_results[:MAX_RESULTS]
            if isinstance(item, dict)
        ]
        return SearchEvidence(
            query=query,
            organic_results=results,
            knowledge_graph=_optional_dict(data.get("knowledge_graph")),
            answer_box=_optional_dict(data.get("answer_box")),
        )


class GoogleCseBackend:
    """Fallback search tier backed by the Google Custom Search JSON API."""

    name = "google_cse"

    def __init__(self, api_key: str, cse_id: str, client: httpx.Client) -> None:
        self.api_key = api_key
        self.cse_id = cse_id
        self.client = client

    def search(self, query: str, language: str) -> SearchEvidence:
        if not self.api_key or not self.cse_id:
            raise SearchBackendError(
                self.name, "GOOGLE_SEARCH_API_KEY / GOOGLE_CSE_ID not configured"
            )

        params = {
            "key": self.api_key,
            "cx": self.cse_id,
            "q": query,
            "hl": language,
            "num": MAX_RESULTS,
        }
        data = _get_json(self.client, self.name, GOOGLE_CSE_URL, params)

        items = data.get("items")
        if not isinstance(items, list):
            raise SearchBackendError(self.name, "response has no items list")

        # Custom Search items: title / link / snippet / displayLink / rank
        results = [
            OrganicResult(
                position=item.get("rank"),
                title=item.get("title", ""),
                link=item.get("link", ""),
                snippet=item.get("snippet", ""),
                source=item.get("displayLink"),
            )
            for item in items[:MAX_RESULTS]
            if isinstance(item, dict)
        ]
        return SearchEvidence(query=query, organic_results=results)


class SearchProvider:
    """Runs the primary backend, then the fallback, then gives up quietly."""

    def __init__(self, primary: SearchBackend, fallback: SearchBackend) -> None:
        self.primary = primary
        self.fallback = fallback

    @classmethod
    def from_settings(
        cls, settings: ChatSettings, client: httpx.Client | None = None
    ) -> SearchProvider:
        """Build the SerpAPI -> Google CSE chain from settings.

        Args:
            settings: Loaded settings holding both backends' credentials.
            client: Shared HTTP client. Defaults to one bounded by
                ``settings.search_timeout``.
        """
        client = client or httpx.Client(timeout=settings.search_timeout)
        return cls(
            primary=SerpApiBackend(settings.serpapi_api_key, client),
            fallback=GoogleCseBackend(
                settings.google_search_api_key, settings.google_cse_id, client
            ),
        )

    def search(self, query: str, language: str = "en") -> SearchEvidence:
        """Fetch evidence for ``query``; never raises.

        Args:
            query: The user's utterance or a derived search query.
            language: Language code used for result language and region.

        Returns:
            Normalized evidence from whichever tier answered, or the error
            variant when both failed.
        """
        logger.info("[search] query=%r language=%s", query, language)
        try:
            evidence = self.primary.search(query, language)
        except SearchBackendError as exc:
            logger.warning("[search] primary backend %s failed: %s", self.primary.name, exc)
        else:
            logger.info("[search] %s returned %d results", self.primary.name, len(evidence.organic_results))
            return evidence

        try:
            evidence = self.fallback.search(query, language)
        except SearchBackendError as exc:
            logger.error("[search] fallback backend %s failed: %s", self.fallback.name, exc)
            return SearchEvidence.failure(SEARCH_FAILED)

        logger.info("[search] %s returned %d results", self.fallback.name, len(evidence.organic_results))
        return evidence
