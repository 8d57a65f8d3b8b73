"""In-memory session store."""

from __future__ import annotations

import copy
import threading
from typing import Iterator

import structlog

from ..core.models import InterviewSession, QuestionEvent
from ..errors import SessionNotFound


class InMemorySessionStore:
    """Dictionary-backed store that hands out copies of session state.

    Callers mutate their own copy and commit it with ``put``, so an operation
    that fails midway never leaves partial state behind.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, InterviewSession] = {}
        self._guard = threading.Lock()

    def get(self, session_id: str) -> InterviewSession:
        with self._guard:
            try:
                return copy.deepcopy(self._sessions[session_id])
            except KeyError as exc:
                raise SessionNotFound(session_id) from exc

    def put(self, session: InterviewSession) -> None:
        snapshot = copy.deepcopy(session)
        with self._guard:
            self._sessions[session.session_id] = snapshot

    def list_question_events(self, session_id: str) -> list[QuestionEvent]:
        return list(self.get(session_id).questions)

    def delete(self, session_id: str) -> None:
        with self._guard:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(session_id)

    def list_sessions(self) -> list[InterviewSession]:
        with self._guard:
            return [copy.deepcopy(session) for session in self._sessions.values()]

    def clear(self) -> None:
        with self._guard:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)


def init_session_store() -> Iterator[InMemorySessionStore]:
    """Resource initializer: the store lives from process start to shutdown."""
    logger = structlog.get_logger(__name__)
    store = InMemorySessionStore()
    logger.info("session_store.started", backend="memory")
    try:
        yield store
    finally:
        logger.info("session_store.stopped", backend="memory", sessions=len(store))
        store.clear()
