"""Interview session lifecycle service."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Callable, Iterator

import pendulum
import structlog

from .core import ResponseAnalyzer, SessionAggregator
from .core.models import (
    InterviewSession,
    QuestionEvent,
    QuestionType,
    ResponseAnalysis,
    SessionStatus,
    SessionSummary,
)
from .errors import QuestionNotFound, SessionClosed, SessionNotFound
from .schemas.records import AnalyzeRequest, ResponseAnalysisRecord
from .storage import SessionLockRegistry, SessionStore


class InterviewService:
    """Session operations over an injected store.

    Every operation on one session runs under that session's lock, loads a copy
    of the session, and writes it back only when the operation succeeds.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        analyzer: ResponseAnalyzer,
        aggregator: SessionAggregator,
        locks: SessionLockRegistry | None = None,
        id_factory: Callable[[], str] | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._store = store
        self._analyzer = analyzer
        self._aggregator = aggregator
        self._locks = locks or SessionLockRegistry()
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    @property
    def strategy_name(self) -> str:
        return self._analyzer.strategy_name

    def start_session(
        self,
        *,
        candidate_name: str | None = None,
        position: str | None = None,
    ) -> InterviewSession:
        session = InterviewSession(
            session_id=self._id_factory(),
            created_at=self._now_provider(),
            candidate_name=candidate_name,
            position=position,
        )
        with self._locks.hold(session.session_id):
            self._store.put(session)
        self._logger.info("session.started", session_id=session.session_id, position=position)
        return session

    def add_question(
        self,
        session_id: str,
        text: str,
        question_type: QuestionType | str,
        *,
        asked: bool = True,
    ) -> QuestionEvent:
        """Record a question. By default it is marked asked immediately."""
        qtype = QuestionType.parse(question_type)
        with self._mutate(session_id) as session:
            now = self._now_provider()
            event = QuestionEvent(
                index=len(session.questions),
                text=text,
                question_type=qtype,
                created_at=now,
            )
            if asked:
                event.mark_asked(now)
            session.questions.append(event)
        self._logger.info(
            "question.recorded",
            session_id=session_id,
            question_index=event.index,
            question_type=qtype.value,
            state=event.state.value,
        )
        return event

    def mark_asked(self, session_id: str, question_index: int) -> QuestionEvent:
        with self._mutate(session_id) as session:
            event = self._question(session, question_index)
            event.mark_asked(self._now_provider())
        return event

    def analyze(self, session_id: str, question_index: int, response_text: str) -> ResponseAnalysis:
        """Analyze the response to an asked question; at most one per session at a time."""
        with self._mutate(session_id) as session:
            event = self._question(session, question_index)
            analysis = self._analyzer.analyze(
                event,
                response_text,
                session_id=session_id,
                responded_at=self._now_provider(),
            )
        return analysis

    def reanalyze(
        self,
        session_id: str,
        question_index: int,
        response_text: str | None = None,
    ) -> ResponseAnalysis:
        """Record a new analysis version for an answered question, keeping prior ones."""
        with self._mutate(session_id) as session:
            event = self._question(session, question_index)
            analysis = self._analyzer.reanalyze(
                event,
                response_text,
                session_id=session_id,
                responded_at=self._now_provider(),
            )
        return analysis

    def handle_analyze_request(self, request: AnalyzeRequest) -> ResponseAnalysisRecord:
        analysis = self.analyze(request.session_id, request.question_index, request.response_text)
        return ResponseAnalysisRecord.from_analysis(analysis)

    def end_session(self, session_id: str) -> InterviewSession:
        with self._mutate(session_id) as session:
            session.status = SessionStatus.ENDED
            session.ended_at = self._now_provider()
        self._logger.info(
            "session.ended",
            session_id=session_id,
            questions=len(session.questions),
            answered=len(session.answered_questions()),
        )
        return session

    def get_session(self, session_id: str) -> InterviewSession:
        return self._store.get(session_id)

    def list_sessions(self) -> list[InterviewSession]:
        return self._store.list_sessions()

    def delete_session(self, session_id: str) -> None:
        try:
            with self._locks.hold(session_id):
                self._store.delete(session_id)
        finally:
            self._locks.discard(session_id)
        self._logger.info("session.deleted", session_id=session_id)

    def get_analyses(self, session_id: str) -> list[ResponseAnalysis]:
        """Latest analysis of every answered question, in question order."""
        return [
            event.analysis
            for event in self._store.list_question_events(session_id)
            if event.analysis is not None
        ]

    def get_analysis_history(self, session_id: str, question_index: int) -> list[ResponseAnalysis]:
        session = self._store.get(session_id)
        return list(self._question(session, question_index).analyses)

    def summarize(self, session_id: str) -> SessionSummary:
        return self._aggregator.summarize(self._store.get(session_id))

    @contextmanager
    def _mutate(self, session_id: str) -> Iterator[InterviewSession]:
        with self._locks.hold(session_id):
            try:
                session = self._store.get(session_id)
            except SessionNotFound:
                # unknown ids must not leave a lock behind
                self._locks.discard(session_id)
                raise
            if session.is_ended:
                raise SessionClosed(session_id)
            yield session
            self._store.put(session)

    @staticmethod
    def _question(session: InterviewSession, question_index: int) -> QuestionEvent:
        event = session.question(question_index)
        if event is None:
            raise QuestionNotFound(session.session_id, question_index)
        return event


__all__ = ["InterviewService"]
