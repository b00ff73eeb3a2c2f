"""polychat/gate.py

Decides whether a web search should ground the reply.

A keyword heuristic, not a classifier: false positives and negatives are
expected. Decisions are deterministic and cost one substring scan per phrase.
"""

from __future__ import annotations

# Standard Library
import logging
from collections.abc import Iterable
from typing import Final, Protocol

logger = logging.getLogger(__name__)

SEARCH_TRIGGER_PHRASES: Final[tuple[str, ...]] = (
    "search",
    "find",
    "look up",
    "what is",
    "who is",
    "where is",
    "how to",
    "when did",
    "why does",
    "latest",
    "news about",
    "information on",
    "tell me about",
    "search for",
)


class SearchGate(Protocol):
    def needs_search(self, utterance: str) -> bool: ...


class KeywordSearchGate:
    """Triggers a search when any phrase occurs in the utterance."""

    def __init__(self, phrases: Iterable[str] = SEARCH_TRIGGER_PHRASES) -> None:
        self.phrases: tuple[str, ...] = tuple(p.lower() for p in phrases)

    def needs_search(self, utterance: str) -> bool:
        lowered = utterance.lower()
        for phrase in self.phrases:
            if phrase in lowered:
                logger.info("[gate] search triggered by %r", phrase)
                return True
        return False


_default_gate = KeywordSearchGate()


def needs_search(utterance: str) -> bool:
    """Check the utterance against the default trigger phrases."""
    return _default_gate.needs_search(utterance)
