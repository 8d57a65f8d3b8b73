"""Session storage abstractions."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..core.models import InterviewSession, QuestionEvent
from .locks import SessionLockRegistry
from .memory import InMemorySessionStore, init_session_store


@runtime_checkable
class SessionStore(Protocol):
    """Key-value store of session state keyed by session identifier.

    Implementations must preserve the insertion order of question events and
    raise ``SessionNotFound`` for unknown identifiers.
    """

    def get(self, session_id: str) -> InterviewSession:
        """Return the stored session or raise SessionNotFound."""

    def put(self, session: InterviewSession) -> None:
        """Insert or replace the session under its identifier."""

    def list_question_events(self, session_id: str) -> list[QuestionEvent]:
        """Return the session's question events in insertion order."""

    def delete(self, session_id: str) -> None:
        """Remove the session or raise SessionNotFound."""

    def list_sessions(self) -> list[InterviewSession]:
        """Return every stored session in creation order."""


__all__ = ["SessionStore", "InMemorySessionStore", "SessionLockRegistry", "init_session_store"]
