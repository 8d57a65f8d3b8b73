"""Interview transcript input schema for replaying sessions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.models import QuestionType


class TranscriptEntry(BaseModel):
    """One question and, when answered, the candidate's response."""

    question: str = Field(min_length=1)
    question_type: QuestionType
    response: str | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("question_type", mode="before")
    @classmethod
    def _parse_question_type(cls, value: Any) -> QuestionType:
        return QuestionType.parse(value)


class Transcript(BaseModel):
    """A recorded interview to run through the engine."""

    candidate_name: str | None = None
    position: str | None = None
    entries: list[TranscriptEntry] = Field(default_factory=list)
    end_session: bool = True

    model_config = ConfigDict(extra="forbid")
