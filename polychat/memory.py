"""polychat/memory.py

Bounded conversation history and the per-session registry that owns it.

Each session keeps the last ``max_history_length`` exchanges, which is
``2 * max_history_length`` turns. Truncation is raw windowing over turns, so a
cut can land between a user turn and its assistant reply.
"""

from __future__ import annotations

# Standard Library
import logging
import threading
from collections import OrderedDict

# Local Modules
from polychat.models import Message, Role, Turn

logger = logging.getLogger(__name__)


class ConversationStore:
    """Rolling window of conversation turns for one session.

    Not synchronized: callers sharing one store interleave their turns.
    """

    def __init__(self, max_history_length: int = 10) -> None:
        """Initialize an empty store.

        Args:
            max_history_length: Exchanges to retain. The store holds at most
                twice this many turns (user + assistant per exchange).
        """
        if max_history_length < 1:
            raise ValueError("max_history_length must be at least 1")
        self.max_history_length = max_history_length
        self._turns: list[Turn] = []

    @property
    def max_turns(self) -> int:
        return self.max_history_length * 2

    def append(self, role: Role | str, content: str) -> Turn:
        """Add a turn to the tail and drop the oldest turns past the window.

        Args:
            role: Turn role - 'user', 'assistant', or 'system'.
            content: The turn content.

        Returns:
            The stored turn.
        """
        turn = Message(role=Role(role), content=content)
        self._turns.append(turn)

        overflow = len(self._turns) - self.max_turns
        if overflow > 0:
            del self._turns[:overflow]

        return turn

    def get_all(self) -> list[Turn]:
        """Return the retained turns, oldest first."""
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)


class SessionRegistry:
    """Maps a session or connection id to its own ``ConversationStore``.

    Owned by the transport layer and injected into every orchestrator call.
    At most ``max_sessions`` stores are kept; the least recently used one is
    evicted when a new session would exceed the cap.
    """

    def __init__(self, max_history_length: int = 10, max_sessions: int = 1000) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_history_length = max_history_length
        self.max_sessions = max_sessions
        self._stores: OrderedDict[str, ConversationStore] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> ConversationStore:
        """Return the store for ``session_id``, creating it on first use."""
        with self._lock:
            store = self._stores.get(session_id)
            if store is not None:
                self._stores.move_to_end(session_id)
                return store

            store = ConversationStore(self.max_history_length)
            self._stores[session_id] = store
            logger.info("[sessions] opened session %r", session_id)
            while len(self._stores) > self.max_sessions:
                evicted, _ = self._stores.popitem(last=False)
                logger.info("[sessions] evicted idle session %r", evicted)
            return store

    def peek(self, session_id: str) -> ConversationStore | None:
        """Return the store for ``session_id`` without creating or touching it."""
        with self._lock:
            return self._stores.get(session_id)

    def clear(self, session_id: str) -> None:
        """Empty the history of ``session_id``; unknown ids are a no-op."""
        with self._lock:
            store = self._stores.get(session_id)
        if store is not None:
            store.clear()
        logger.info("[sessions] cleared session %r", session_id)

    def discard(self, session_id: str) -> None:
        """Forget ``session_id`` entirely (e.g. when its connection closes)."""
        with self._lock:
            self._stores.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._stores

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)
