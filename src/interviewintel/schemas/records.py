"""Transport record format for analyses, summaries and sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pendulum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.models import (
    DimensionScore,
    EvidenceSpan,
    InterviewSession,
    QuestionEvent,
    QuestionType,
    ResponseAnalysis,
    ResponseMetadata,
    SessionSummary,
)


def _to_pendulum(value: datetime | None) -> pendulum.DateTime | None:
    if value is None:
        return None
    return pendulum.instance(value)


class AnalyzeRequest(BaseModel):
    """Inbound request to analyze one response."""

    session_id: str = Field(min_length=1)
    question_index: int = Field(ge=0)
    response_text: str = ""

    model_config = ConfigDict(extra="forbid")


class EvidenceSpanRecord(BaseModel):
    start: int = Field(ge=0)
    end: int = Field(gt=0)
    tag: str
    rationale: str = ""
    text: str = ""

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_span(cls, span: EvidenceSpan) -> "EvidenceSpanRecord":
        return cls(start=span.start, end=span.end, tag=span.tag, rationale=span.rationale, text=span.text)

    def to_span(self) -> EvidenceSpan:
        return EvidenceSpan(
            start=self.start,
            end=self.end,
            tag=self.tag,
            rationale=self.rationale,
            text=self.text,
        )


class DimensionScoreRecord(BaseModel):
    score: float = Field(ge=0.0, le=100.0)
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: list[EvidenceSpanRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class ResponseMetadataRecord(BaseModel):
    char_length: int = 0
    word_count: int = 0
    elapsed_seconds: float | None = None
    question_text: str = ""

    model_config = ConfigDict(extra="forbid")


class ResponseAnalysisRecord(BaseModel):
    """Serialized ResponseAnalysis as exchanged with the transport layer."""

    session_id: str
    question_index: int
    version: int = 1
    question_type: QuestionType
    response_text: str
    dimensions: dict[str, DimensionScoreRecord]
    evidence: list[EvidenceSpanRecord] = Field(default_factory=list)
    overall_score: float = Field(ge=0.0, le=100.0)
    justification: str = ""
    suggestions: list[str] = Field(default_factory=list)
    strategy: str = ""
    metadata: ResponseMetadataRecord = Field(default_factory=ResponseMetadataRecord)
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("question_type", mode="before")
    @classmethod
    def _parse_question_type(cls, value: Any) -> QuestionType:
        return QuestionType.parse(value)

    @classmethod
    def from_analysis(cls, analysis: ResponseAnalysis) -> "ResponseAnalysisRecord":
        return cls(
            session_id=analysis.session_id,
            question_index=analysis.question_index,
            version=analysis.version,
            question_type=analysis.question_type,
            response_text=analysis.response_text,
            dimensions={
                name: DimensionScoreRecord(
                    score=result.score,
                    confidence=result.confidence,
                    evidence=[EvidenceSpanRecord.from_span(span) for span in result.evidence],
                )
                for name, result in analysis.dimensions.items()
            },
            evidence=[EvidenceSpanRecord.from_span(span) for span in analysis.evidence],
            overall_score=analysis.overall_score,
            justification=analysis.justification,
            suggestions=list(analysis.suggestions),
            strategy=analysis.strategy,
            metadata=ResponseMetadataRecord(
                char_length=analysis.metadata.char_length,
                word_count=analysis.metadata.word_count,
                elapsed_seconds=analysis.metadata.elapsed_seconds,
                question_text=analysis.metadata.question_text,
            ),
            created_at=analysis.created_at,
        )

    def to_analysis(self) -> ResponseAnalysis:
        spans = tuple(record.to_span() for record in self.evidence)
        return ResponseAnalysis(
            session_id=self.session_id,
            question_index=self.question_index,
            version=self.version,
            question_type=self.question_type,
            response_text=self.response_text,
            metadata=ResponseMetadata(
                question_type=self.question_type,
                char_length=self.metadata.char_length,
                word_count=self.metadata.word_count,
                elapsed_seconds=self.metadata.elapsed_seconds,
                response_text=self.response_text,
                question_text=self.metadata.question_text,
            ),
            dimensions={
                name: DimensionScore(
                    score=record.score,
                    confidence=record.confidence,
                    evidence=tuple(span.to_span() for span in record.evidence),
                )
                for name, record in self.dimensions.items()
            },
            evidence=spans,
            overall_score=self.overall_score,
            justification=self.justification,
            suggestions=tuple(self.suggestions),
            strategy=self.strategy,
            created_at=_to_pendulum(self.created_at),
        )


class DimensionStatsRecord(BaseModel):
    mean: float
    count: int
    minimum: float
    maximum: float
    trend: str


class ResponseOutlierRecord(BaseModel):
    question_index: int
    overall_score: float
    deviation: float
    direction: str


class SessionSummaryRecord(BaseModel):
    session_id: str
    question_count: int
    answered_count: int
    dimensions: dict[str, DimensionStatsRecord]
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    overall_score: float
    outliers: list[ResponseOutlierRecord] = Field(default_factory=list)
    follow_up_suggestions: list[str] = Field(default_factory=list)
    final: bool = False
    generated_at: datetime | None = None

    @classmethod
    def from_summary(cls, summary: SessionSummary) -> "SessionSummaryRecord":
        return cls(
            session_id=summary.session_id,
            question_count=summary.question_count,
            answered_count=summary.answered_count,
            dimensions={
                name: DimensionStatsRecord(
                    mean=stats.mean,
                    count=stats.count,
                    minimum=stats.minimum,
                    maximum=stats.maximum,
                    trend=stats.trend,
                )
                for name, stats in summary.dimensions.items()
            },
            strengths=list(summary.strengths),
            weaknesses=list(summary.weaknesses),
            overall_score=summary.overall_score,
            outliers=[
                ResponseOutlierRecord(
                    question_index=outlier.question_index,
                    overall_score=outlier.overall_score,
                    deviation=outlier.deviation,
                    direction=outlier.direction,
                )
                for outlier in summary.outliers
            ],
            follow_up_suggestions=list(summary.follow_up_suggestions),
            final=summary.final,
            generated_at=summary.generated_at,
        )


class QuestionEventRecord(BaseModel):
    index: int
    text: str
    question_type: QuestionType
    state: str
    created_at: datetime
    asked_at: datetime | None = None
    analysis_versions: int = 0
    latest_analysis: ResponseAnalysisRecord | None = None

    @classmethod
    def from_event(cls, event: QuestionEvent) -> "QuestionEventRecord":
        latest = event.analysis
        return cls(
            index=event.index,
            text=event.text,
            question_type=event.question_type,
            state=event.state.value,
            created_at=event.created_at,
            asked_at=event.asked_at,
            analysis_versions=len(event.analyses),
            latest_analysis=ResponseAnalysisRecord.from_analysis(latest) if latest else None,
        )


class SessionRecord(BaseModel):
    session_id: str
    status: str
    candidate_name: str | None = None
    position: str | None = None
    created_at: datetime
    ended_at: datetime | None = None
    questions: list[QuestionEventRecord] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: InterviewSession) -> "SessionRecord":
        return cls(
            session_id=session.session_id,
            status=session.status.value,
            candidate_name=session.candidate_name,
            position=session.position,
            created_at=session.created_at,
            ended_at=session.ended_at,
            questions=[QuestionEventRecord.from_event(event) for event in session.questions],
        )


__all__ = [
    "AnalyzeRequest",
    "EvidenceSpanRecord",
    "DimensionScoreRecord",
    "ResponseMetadataRecord",
    "ResponseAnalysisRecord",
    "DimensionStatsRecord",
    "ResponseOutlierRecord",
    "SessionSummaryRecord",
    "QuestionEventRecord",
    "SessionRecord",
]
