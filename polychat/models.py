"""polychat/models.py

Plain data types passed between the orchestrator stages.
"""

from __future__ import annotations

# Standard Library
import dataclasses
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Conversation roles understood by every model backend."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclasses.dataclass(frozen=True, slots=True)
class Message:
    """A single role-tagged message.

    Used both as a stored history turn and as a prompt entry sent to a model.
    """

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": str(self.role), "content": self.content}


# History entries and prompt entries share one shape.
Turn = Message
PromptMessage = Message


@dataclasses.dataclass(frozen=True, slots=True)
class Location:
    """Caller-supplied geolocation for a single request."""

    latitude: float
    longitude: float
    address: str | None = None


@dataclasses.dataclass(slots=True)
class OrganicResult:
    """One normalized web search hit."""

    title: str
    link: str
    snippet: str
    position: int | None = None
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "title": self.title,
            "link": self.link,
            "snippet": self.snippet,
            "source": self.source,
        }


@dataclasses.dataclass(slots=True)
class SearchEvidence:
    """Search results for one query, or the error variant.

    Attributes:
        query: The query the results were fetched for.
        organic_results: Ordered organic hits, capped by the provider.
        knowledge_graph: Opaque knowledge panel payload, if any.
        answer_box: Opaque answer box payload, if any.
        error: Set only on the error variant; results are then empty.
    """

    query: str = ""
    organic_results: list[OrganicResult] = dataclasses.field(default_factory=list)
    knowledge_graph: dict[str, Any] | None = None
    answer_box: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> SearchEvidence:
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def links(self) -> list[str]:
        """Return organic result links in result order."""
        if self.is_error:
            return []
        return [result.link for result in self.organic_results if result.link]

    def to_dict(self) -> dict[str, Any]:
        if self.is_error:
            return {"error": self.error, "results": []}
        return {
            "query": self.query,
            "organic_results": [r.to_dict() for r in self.organic_results],
            "knowledge_graph": self.knowledge_graph,
            "answer_box": self.answer_box,
        }


@dataclasses.dataclass(slots=True)
class ChatResponse:
    """Final artifact of one orchestration cycle."""

    text: str
    links: list[str] = dataclasses.field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "links": list(self.links)}
