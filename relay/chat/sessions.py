"""Per-user conversation sessions for the relay.

A Session carries what the relay needs to keep a conversation going with the
gateway: the gateway's own session handle plus a short local transcript.

Design decisions:
  - In-memory storage (dict) — simple, no external deps, fine for a
    single-process bot. Lost on restart; that is acceptable because the
    gateway keeps the authoritative conversation.
  - Keyed by Telegram user_id, not chat_id — the allow-list is per user.
  - No TTL — a session lives until /reset or process exit.
  - History is capped at DEFAULT_MAX_HISTORY entries (20 exchanges). Oldest
    entries are dropped first.
  - No locking here. The handlers serialise free-text messages per user, and
    nothing in this module awaits.

The store is built once in relay.chat.__main__ and handed to the Application
via RelayDeps (no globals) so tests can construct their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# 20 exchanges × (user + assistant) = 40 entries.
DEFAULT_MAX_EXCHANGES: int = 20
DEFAULT_MAX_HISTORY: int = DEFAULT_MAX_EXCHANGES * 2

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class HistoryEntry:
    role: Role
    content: str


@dataclass
class Session:
    """Conversation state for one Telegram user."""

    user_id: int
    remote_session_id: str | None = None
    history: list[HistoryEntry] = field(default_factory=list)
    max_history: int = DEFAULT_MAX_HISTORY

    def record_exchange(
        self,
        user_text: str,
        reply: str | None,
        remote_session_id: str | None = None,
    ) -> None:
        """Apply a successful gateway reply to this session.

        A non-empty ``remote_session_id`` replaces the stored one (first
        assignment or update). The user and assistant entries are appended
        and the history is trimmed to ``max_history``.

        Args:
            user_text: The message the user sent.
            reply: The agent's reply text (stored as "" when absent).
            remote_session_id: Gateway session handle returned with the reply.
        """
        if remote_session_id:
            self.remote_session_id = remote_session_id

        self.history.append(HistoryEntry(role="user", content=user_text))
        self.history.append(HistoryEntry(role="assistant", content=reply or ""))
        if self.max_history > 0 and len(self.history) > self.max_history:
            self.history = self.history[-self.max_history :]


class SessionStore:
    """In-memory map of user_id → Session.

    Usage::

        store = SessionStore()
        session = store.get_or_create(user_id)
        session.record_exchange("hi", "hello", remote_session_id="abc")
        store.delete(user_id)  # /reset

    Args:
        max_history: Cap applied to every session created by this store.
                     Set to 0 or negative for unlimited (not recommended).
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self._max_history = max_history
        self._sessions: dict[int, Session] = {}

    @property
    def max_history(self) -> int:
        return self._max_history

    def get(self, user_id: int) -> Session | None:
        """Return the user's session, or None if there is none."""
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int) -> Session:
        """Return the user's session, creating an empty one on first use."""
        session = self._sessions.get(user_id)
        if session is None:
            session = Session(user_id=user_id, max_history=self._max_history)
            self._sessions[user_id] = session
        return session

    def delete(self, user_id: int) -> bool:
        """Remove the user's session. Returns True if one existed."""
        return self._sessions.pop(user_id, None) is not None

    def clear(self) -> None:
        """Remove all sessions. Primarily for testing."""
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions
