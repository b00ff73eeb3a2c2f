"""polychat/errors.py

Exception hierarchy shared by every layer of the orchestrator.

Each layer catches failures at its own boundary and re-raises one of these
coarse kinds so callers never see provider-specific error internals.
"""

from __future__ import annotations


class PolychatError(Exception):
    """Base class for all polychat errors."""


class ConfigurationError(PolychatError):
    """Raised at startup when the configured backend cannot be built."""


class UnknownProviderError(ConfigurationError):
    """Raised when a provider id has no registered adapter."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"No model adapter registered for provider {provider!r}")
        self.provider = provider


class ProviderUnavailableError(PolychatError):
    """A model backend failed: transport error, bad status, or bad envelope."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Failed to get response from {provider}")
        self.provider = provider


class SearchBackendError(PolychatError):
    """A single search tier failed. Never escapes ``SearchProvider.search``."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(f"{backend} search failed: {reason}")
        self.backend = backend
        self.reason = reason


class MessageProcessingError(PolychatError):
    """Uniform failure surfaced by ``ChatOrchestrator.process_message``."""

    def __init__(self, message: str = "Failed to process message") -> None:
        super().__init__(message)
