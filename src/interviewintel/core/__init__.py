"""Core response analysis and scoring engine."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .aggregator import RunningSummary, SessionAggregator, SessionAggregatorConfig
from .analyzer import AnalyzerConfig, ResponseAnalyzer
from .evidence import EvidenceExtractor, EvidenceExtractorConfig
from .models import (
    DimensionScore,
    DimensionStats,
    EvidenceSpan,
    InterviewSession,
    QuestionEvent,
    QuestionState,
    QuestionType,
    ResponseAnalysis,
    ResponseMetadata,
    ResponseOutlier,
    SessionStatus,
    SessionSummary,
)
from .profiles import ProfileRegistry, QuestionProfile, build_profiles
from .strategies import (
    ModelBackedScoringStrategy,
    RuleBasedScoringStrategy,
    ScoringClient,
    ScoringStrategy,
)

__all__ = [
    "ScoringStrategy",
    "ScoringClient",
    "RuleBasedScoringStrategy",
    "ModelBackedScoringStrategy",
    "EvidenceExtractor",
    "EvidenceExtractorConfig",
    "ResponseAnalyzer",
    "AnalyzerConfig",
    "SessionAggregator",
    "SessionAggregatorConfig",
    "RunningSummary",
    "ProfileRegistry",
    "QuestionProfile",
    "build_profiles",
    "QuestionType",
    "QuestionState",
    "SessionStatus",
    "EvidenceSpan",
    "DimensionScore",
    "DimensionStats",
    "ResponseMetadata",
    "ResponseAnalysis",
    "ResponseOutlier",
    "QuestionEvent",
    "InterviewSession",
    "SessionSummary",
]
