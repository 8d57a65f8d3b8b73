"""Scoring strategy implementations."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ..models import DimensionScore, EvidenceSpan, QuestionType, ResponseMetadata
from .model_backed import (
    ModelBackedScoringConfig,
    ModelBackedScoringStrategy,
    ScoringClient,
    init_model_strategy,
)
from .rule_based import DimensionRule, RuleBasedScoringConfig, RuleBasedScoringStrategy


@runtime_checkable
class ScoringStrategy(Protocol):
    """Scoring strategy contract.

    Implementations map a question type, response metadata and the extracted
    evidence to a score and confidence for every dimension the question type
    declares. Callers only rely on this contract, never on which
    implementation is configured.
    """

    name: str

    def score(
        self,
        question_type: QuestionType | str,
        metadata: ResponseMetadata,
        evidence: Sequence[EvidenceSpan],
    ) -> dict[str, DimensionScore]:
        """Return a DimensionScore per declared dimension."""


__all__ = [
    "ScoringStrategy",
    "ScoringClient",
    "RuleBasedScoringStrategy",
    "RuleBasedScoringConfig",
    "DimensionRule",
    "ModelBackedScoringStrategy",
    "ModelBackedScoringConfig",
    "init_model_strategy",
]
