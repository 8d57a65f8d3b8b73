"""Error hierarchy raised by the interview engine."""

from __future__ import annotations

from typing import Any


class InterviewEngineError(Exception):
    """Base class for all engine errors. Each error is local to one operation."""

    code = "engine_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": dict(self.details)}


class NotFound(InterviewEngineError):
    code = "not_found"


class SessionNotFound(NotFound):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown session: {session_id!r}", session_id=session_id)


class QuestionNotFound(NotFound):
    def __init__(self, session_id: str, question_index: int) -> None:
        super().__init__(
            f"Session {session_id!r} has no question at index {question_index}",
            session_id=session_id,
            question_index=question_index,
        )


class StateConflict(InterviewEngineError):
    """Raised when a question is not in the state an operation requires."""

    code = "state_conflict"


class SessionClosed(InterviewEngineError):
    code = "session_closed"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id!r} has ended", session_id=session_id)


class EmptySession(InterviewEngineError):
    code = "empty_session"

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session {session_id!r} has no analyzed responses to summarize",
            session_id=session_id,
        )


class InvalidQuestionType(InterviewEngineError, ValueError):
    code = "invalid_question_type"

    def __init__(self, value: Any, allowed: list[str] | None = None) -> None:
        super().__init__(
            f"Unrecognized question type: {value!r}",
            value=value,
            allowed=allowed or [],
        )


class ScoringBackendError(InterviewEngineError):
    """Raised by model-backed scoring when the backend cannot produce a result."""

    code = "scoring_backend_error"


__all__ = [
    "InterviewEngineError",
    "NotFound",
    "SessionNotFound",
    "QuestionNotFound",
    "StateConflict",
    "SessionClosed",
    "EmptySession",
    "InvalidQuestionType",
    "ScoringBackendError",
]
