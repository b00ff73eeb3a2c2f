"""polychat/chat.py

The orchestrator: one request/response cycle from utterance to ``ChatResponse``.

Sequence (strict): resolve language, record the user turn, build the prompt,
consult the search gate, optionally splice search evidence in as the last
message, dispatch to the configured model, normalize, record the reply.
"""

from __future__ import annotations

# Standard Library
import logging

# Local Modules
from polychat.config import ChatSettings
from polychat.errors import MessageProcessingError
from polychat.gate import KeywordSearchGate, SearchGate
from polychat.language import HeuristicLanguageDetector, LanguageDetector, resolve_language
from polychat.memory import ConversationStore
from polychat.models import ChatResponse, Location, Role, SearchEvidence
from polychat.normalizer import normalize
from polychat.prompt import PromptBuilder
from polychat.providers import ModelDispatcher
from polychat.search import SearchProvider

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Composes language resolution, prompting, search, and dispatch.

    Holds no conversation state of its own; every call receives the caller's
    session history.
    """

    def __init__(
        self,
        dispatcher: ModelDispatcher,
        provider_id: str,
        search_provider: SearchProvider,
        *,
        gate: SearchGate | None = None,
        language_detector: LanguageDetector | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            dispatcher: Routing table holding the configured model adapter.
            provider_id: Adapter id every request is dispatched to.
            search_provider: Two-tier web search used when the gate fires.
            gate: Search decision policy. Defaults to the keyword gate.
            language_detector: Used when the caller sends no language hint.
            prompt_builder: Prompt assembly. Defaults to ``PromptBuilder()``.
        """
        self.dispatcher = dispatcher
        self.provider_id = provider_id
        self.search_provider = search_provider
        self.gate = gate or KeywordSearchGate()
        self.language_detector = language_detector or HeuristicLanguageDetector()
        self.prompt_builder = prompt_builder or PromptBuilder()

    @classmethod
    def from_settings(cls, settings: ChatSettings) -> ChatOrchestrator:
        return cls(
            dispatcher=ModelDispatcher.from_settings(settings),
            provider_id=settings.llm_provider,
            search_provider=SearchProvider.from_settings(settings),
        )

    def process_message(
        self,
        message: str,
        language: str | None = None,
        location: Location | None = None,
        *,
        history: ConversationStore,
    ) -> ChatResponse:
        """Answer ``message`` within the given conversation.

        The user turn is recorded before the model is called and stays in
        ``history`` even if a later step fails.

        Args:
            message: The user's utterance.
            language: Optional language code; detected when omitted.
            location: Optional caller geolocation.
            history: The session's conversation store.

        Returns:
            The model text plus extracted and search-derived links.

        Raises:
            MessageProcessingError: If any step fails.
        """
        try:
            resolved_language = resolve_language(message, language, self.language_detector)
            history.append(Role.USER, message)

            prompt = self.prompt_builder.build(
                message, resolved_language, location, history.get_all()
            )

            evidence: SearchEvidence | None = None
            if self.gate.needs_search(message):
                evidence = self.search_provider.search(message, resolved_language)
                prompt.append(self.prompt_builder.evidence_message(message, evidence))

            logger.info(
                "[orchestrator] language=%s search=%s prompt_messages=%d provider=%s",
                resolved_language,
                evidence is not None,
                len(prompt),
                self.provider_id,
            )
            raw = self.dispatcher.dispatch(self.provider_id, prompt)

            response = normalize(raw, evidence)
            history.append(Role.ASSISTANT, response.text)
            return response
        except Exception as exc:
            logger.error("[orchestrator] failed to process message: %s", exc, exc_info=True)
            raise MessageProcessingError() from exc
