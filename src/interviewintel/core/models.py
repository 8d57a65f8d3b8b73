"""Domain model for interview sessions and response analyses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping

import pendulum

from ..errors import InvalidQuestionType, StateConflict

TrendType = Literal["improving", "declining", "stable", "insufficient-data"]


class QuestionType(str, Enum):
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"
    SITUATIONAL = "situational"

    @classmethod
    def parse(cls, value: Any) -> "QuestionType":
        """Return the enum member for ``value`` or raise InvalidQuestionType."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        raise InvalidQuestionType(value, allowed=[member.value for member in cls])


class QuestionState(str, Enum):
    CREATED = "created"
    ASKED = "asked"
    ANSWERED = "answered"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class EvidenceSpan:
    """A located, tagged substring of a response cited in support of a score."""

    start: int
    end: int
    tag: str
    rationale: str
    text: str = ""

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(
                f"Invalid evidence span [{self.start}, {self.end}) for tag {self.tag!r}"
            )

    def within(self, text_length: int) -> bool:
        return 0 <= self.start < self.end <= text_length

    def overlaps(self, other: "EvidenceSpan") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class DimensionScore:
    """Score, confidence and supporting evidence for one dimension."""

    score: float
    confidence: float
    evidence: tuple[EvidenceSpan, ...] = ()


@dataclass(frozen=True)
class ResponseMetadata:
    """Features of a response available to every scoring strategy."""

    question_type: QuestionType
    char_length: int
    word_count: int
    elapsed_seconds: float | None = None
    response_text: str = ""
    question_text: str = ""

    @classmethod
    def build(
        cls,
        *,
        question_type: QuestionType,
        response_text: str,
        question_text: str = "",
        elapsed_seconds: float | None = None,
    ) -> "ResponseMetadata":
        return cls(
            question_type=question_type,
            char_length=len(response_text),
            word_count=len(response_text.split()),
            elapsed_seconds=elapsed_seconds,
            response_text=response_text,
            question_text=question_text,
        )


@dataclass(frozen=True)
class ResponseAnalysis:
    """Immutable evaluation of one response. Re-analysis creates a new version."""

    session_id: str
    question_index: int
    version: int
    question_type: QuestionType
    response_text: str
    metadata: ResponseMetadata
    dimensions: Mapping[str, DimensionScore]
    evidence: tuple[EvidenceSpan, ...]
    overall_score: float
    justification: str
    suggestions: tuple[str, ...] = ()
    strategy: str = ""
    created_at: pendulum.DateTime | None = None


@dataclass(slots=True)
class QuestionEvent:
    """A question asked during a session, with every analysis of its response."""

    index: int
    text: str
    question_type: QuestionType
    created_at: pendulum.DateTime
    asked_at: pendulum.DateTime | None = None
    state: QuestionState = QuestionState.CREATED
    analyses: list[ResponseAnalysis] = field(default_factory=list)

    @property
    def analysis(self) -> ResponseAnalysis | None:
        return self.analyses[-1] if self.analyses else None

    def mark_asked(self, at: pendulum.DateTime) -> None:
        if self.state is not QuestionState.CREATED:
            raise StateConflict(
                f"Question {self.index} is already {self.state.value}",
                question_index=self.index,
                state=self.state.value,
            )
        self.asked_at = at
        self.state = QuestionState.ASKED

    def attach_analysis(self, analysis: ResponseAnalysis, *, reanalysis: bool = False) -> None:
        expected = QuestionState.ANSWERED if reanalysis else QuestionState.ASKED
        if self.state is not expected:
            raise StateConflict(
                f"Question {self.index} is {self.state.value}, expected {expected.value}",
                question_index=self.index,
                state=self.state.value,
            )
        self.analyses.append(analysis)
        self.state = QuestionState.ANSWERED


@dataclass(slots=True)
class InterviewSession:
    """A single interview and its ordered question events."""

    session_id: str
    created_at: pendulum.DateTime
    candidate_name: str | None = None
    position: str | None = None
    status: SessionStatus = SessionStatus.ACTIVE
    ended_at: pendulum.DateTime | None = None
    questions: list[QuestionEvent] = field(default_factory=list)

    @property
    def is_ended(self) -> bool:
        return self.status is SessionStatus.ENDED

    def question(self, index: int) -> QuestionEvent | None:
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    def answered_questions(self) -> list[QuestionEvent]:
        return [event for event in self.questions if event.analysis is not None]


@dataclass(slots=True)
class DimensionStats:
    mean: float
    count: int
    minimum: float
    maximum: float
    trend: TrendType


@dataclass(slots=True)
class ResponseOutlier:
    question_index: int
    overall_score: float
    deviation: float
    direction: Literal["above", "below"]


@dataclass(slots=True)
class SessionSummary:
    """On-demand aggregate over the analyzed responses of a session."""

    session_id: str
    question_count: int
    answered_count: int
    dimensions: dict[str, DimensionStats]
    strengths: list[str]
    weaknesses: list[str]
    overall_score: float
    outliers: list[ResponseOutlier] = field(default_factory=list)
    follow_up_suggestions: list[str] = field(default_factory=list)
    final: bool = False
    generated_at: pendulum.DateTime | None = None


__all__ = [
    "QuestionType",
    "QuestionState",
    "SessionStatus",
    "TrendType",
    "EvidenceSpan",
    "DimensionScore",
    "ResponseMetadata",
    "ResponseAnalysis",
    "QuestionEvent",
    "InterviewSession",
    "DimensionStats",
    "ResponseOutlier",
    "SessionSummary",
]
