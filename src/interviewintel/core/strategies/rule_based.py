"""Rule-based dimension scoring."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Sequence

from .. import evidence as tags
from ..models import DimensionScore, EvidenceSpan, QuestionType, ResponseMetadata
from ..profiles import (
    CLARITY,
    DEPTH,
    RELEVANCE,
    SELF_REFLECTION,
    STRUCTURE,
    ProfileRegistry,
    build_profiles,
)


@dataclass
class DimensionRule:
    """Base score and evidence-tag weights (in score points) for one dimension."""

    base: float = 50.0
    tag_weights: dict[str, float] = field(default_factory=dict)


def _default_rules() -> dict[str, DimensionRule]:
    return {
        RELEVANCE: DimensionRule(
            tag_weights={
                tags.KEYWORD_HIT: 36.0,
                tags.EXAMPLE_GIVEN: 10.0,
                tags.HEDGING: -8.0,
            }
        ),
        CLARITY: DimensionRule(
            tag_weights={
                tags.STRUCTURAL_MARKER: 16.0,
                tags.CAUSAL_REASONING: 14.0,
                tags.HEDGING: -20.0,
                tags.FILLER: -24.0,
            }
        ),
        DEPTH: DimensionRule(
            tag_weights={
                tags.QUANTIFIED_CLAIM: 30.0,
                tags.EXAMPLE_GIVEN: 22.0,
                tags.CAUSAL_REASONING: 16.0,
                tags.KEYWORD_HIT: 10.0,
            }
        ),
        STRUCTURE: DimensionRule(
            tag_weights={
                tags.STRUCTURAL_MARKER: 32.0,
                tags.CAUSAL_REASONING: 10.0,
                tags.OUTCOME_STATEMENT: 12.0,
                tags.FILLER: -10.0,
            }
        ),
        SELF_REFLECTION: DimensionRule(
            tag_weights={
                tags.SELF_REFLECTION: 36.0,
                tags.OWNERSHIP: 18.0,
                tags.OUTCOME_STATEMENT: 10.0,
            }
        ),
    }


@dataclass
class RuleBasedScoringConfig:
    """Configuration for rule-based dimension scoring."""

    neutral_score: float = 50.0
    saturation_rate: float = 0.5
    confidence_floor: float = 0.2
    distinct_tag_gain: float = 0.15
    length_gain: float = 0.3
    length_saturation_words: int = 150
    short_response_words: int = 12
    short_response_penalty: float = 10.0
    length_sensitive_dimensions: list[str] = field(default_factory=lambda: [DEPTH])
    dimension_rules: dict[str, Any] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        rules = _default_rules()
        for name, rule in (self.dimension_rules or {}).items():
            rules[name] = rule if isinstance(rule, DimensionRule) else DimensionRule(**rule)
        self.dimension_rules = rules
        if not 0.0 < self.saturation_rate < 1.0:
            raise ValueError("saturation_rate must be between 0 and 1 (exclusive)")
        if not 0.0 <= self.confidence_floor < 1.0:
            raise ValueError("confidence_floor must be in [0, 1)")


class RuleBasedScoringStrategy:
    """Turn evidence spans into saturating per-dimension scores."""

    name = "rule_based"

    def __init__(
        self,
        *,
        profiles: ProfileRegistry | None = None,
        config: RuleBasedScoringConfig | None = None,
    ) -> None:
        self._profiles = profiles or build_profiles()
        self._config = config or RuleBasedScoringConfig()

    def score(
        self,
        question_type: QuestionType | str,
        metadata: ResponseMetadata,
        evidence: Sequence[EvidenceSpan],
    ) -> dict[str, DimensionScore]:
        profile = self._profiles.get(question_type)
        return {
            dimension: self._score_dimension(dimension, metadata, evidence)
            for dimension in profile.dimensions
        }

    def rule_for(self, dimension: str) -> DimensionRule:
        return self._config.dimension_rules.get(dimension) or DimensionRule(
            base=self._config.neutral_score
        )

    def _score_dimension(
        self,
        dimension: str,
        metadata: ResponseMetadata,
        evidence: Sequence[EvidenceSpan],
    ) -> DimensionScore:
        rule = self.rule_for(dimension)
        contributing = [span for span in evidence if rule.tag_weights.get(span.tag)]
        if not contributing:
            return self.neutral()

        counts = Counter(span.tag for span in contributing)
        total = rule.base
        for tag, count in counts.items():
            total += rule.tag_weights[tag] * self._count_effect(count)

        if (
            dimension in self._config.length_sensitive_dimensions
            and metadata.word_count < self._config.short_response_words
        ):
            total -= self._config.short_response_penalty

        return DimensionScore(
            score=_clamp(total, 0.0, 100.0),
            confidence=self._confidence(len(counts), metadata.word_count),
            evidence=tuple(sorted(contributing, key=lambda span: (span.start, span.end, span.tag))),
        )

    def neutral(self) -> DimensionScore:
        return DimensionScore(
            score=self._config.neutral_score,
            confidence=self._config.confidence_floor,
            evidence=(),
        )

    def _count_effect(self, count: int) -> float:
        return 1.0 - self._config.saturation_rate ** count

    def _confidence(self, distinct_tags: int, word_count: int) -> float:
        length_ratio = min(1.0, word_count / max(1, self._config.length_saturation_words))
        value = (
            self._config.confidence_floor
            + self._config.distinct_tag_gain * distinct_tags
            + self._config.length_gain * length_ratio
        )
        return min(1.0, value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


__all__ = ["RuleBasedScoringStrategy", "RuleBasedScoringConfig", "DimensionRule"]
