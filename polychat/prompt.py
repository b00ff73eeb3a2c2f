"""polychat/prompt.py

Assembles the provider-agnostic message sequence for one model call.

Order is fixed: persona, optional location, history, current utterance.
Search evidence, when present, is appended by the orchestrator as the very
last message so recency-weighted models treat it as the freshest context.
"""

from __future__ import annotations

# Standard Library
import json
from collections.abc import Sequence

# Local Modules
from polychat.models import Location, Message, PromptMessage, Role, SearchEvidence, Turn

UNKNOWN_LOCATION = "Unknown location"


class PromptBuilder:
    """Builds the full conversation context submitted to a model."""

    def persona_message(self, language: str) -> PromptMessage:
        return Message(
            Role.SYSTEM,
            "You are a helpful multilingual assistant. Respond in the same "
            f"language as the user's query. Current language: {language}.",
        )

    def location_message(self, location: Location) -> PromptMessage:
        return Message(
            Role.SYSTEM,
            f"The user's location is: {location.latitude}, {location.longitude}. "
            f"This appears to be in or near: {location.address or UNKNOWN_LOCATION}.",
        )

    def evidence_message(self, query: str, evidence: SearchEvidence) -> PromptMessage:
        """Summarize search evidence as a system message tagged with its query."""
        payload = json.dumps(evidence.to_dict(), ensure_ascii=False)
        return Message(Role.SYSTEM, f'Web search results for "{query}": {payload}')

    def build(
        self,
        utterance: str,
        language: str,
        location: Location | None,
        history: Sequence[Turn],
    ) -> list[PromptMessage]:
        """Return the ordered prompt for ``utterance``.

        Args:
            utterance: The current user message.
            language: Resolved language code for the reply.
            location: Optional caller geolocation.
            history: Prior turns, oldest first, copied verbatim.

        Returns:
            A fresh list of messages; callers may append to it.
        """
        prompt = [self.persona_message(language)]
        if location is not None:
            prompt.append(self.location_message(location))
        prompt.extend(Message(turn.role, turn.content) for turn in history)
        prompt.append(Message(Role.USER, utterance))
        return prompt
