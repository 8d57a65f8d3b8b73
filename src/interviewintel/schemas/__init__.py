"""Pydantic schema definitions for transport records and configuration."""

from __future__ import annotations

from .config import AppConfig, load_config
from .transcript import Transcript, TranscriptEntry
from .records import (
    AnalyzeRequest,
    DimensionScoreRecord,
    EvidenceSpanRecord,
    QuestionEventRecord,
    ResponseAnalysisRecord,
    SessionRecord,
    SessionSummaryRecord,
)

__all__ = [
    "AppConfig",
    "load_config",
    "AnalyzeRequest",
    "EvidenceSpanRecord",
    "DimensionScoreRecord",
    "ResponseAnalysisRecord",
    "SessionSummaryRecord",
    "QuestionEventRecord",
    "SessionRecord",
    "Transcript",
    "TranscriptEntry",
]
