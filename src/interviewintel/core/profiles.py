"""Per-question-type dimension sets and composite weights."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .models import QuestionType

WEIGHT_TOLERANCE = 1e-6

RELEVANCE = "relevance"
CLARITY = "clarity"
DEPTH = "depth"
STRUCTURE = "structure"
SELF_REFLECTION = "self_reflection"

DEFAULT_PROFILE_WEIGHTS: dict[QuestionType, dict[str, float]] = {
    QuestionType.TECHNICAL: {RELEVANCE: 0.35, DEPTH: 0.40, STRUCTURE: 0.25},
    QuestionType.BEHAVIORAL: {RELEVANCE: 0.25, STRUCTURE: 0.30, SELF_REFLECTION: 0.45},
    QuestionType.SITUATIONAL: {RELEVANCE: 0.30, CLARITY: 0.25, DEPTH: 0.20, STRUCTURE: 0.25},
}


def validate_weights(weights: Mapping[str, float], *, label: str = "profile") -> None:
    """Raise ValueError unless weights are non-negative and sum to 1.0."""
    if not weights:
        raise ValueError(f"{label}: at least one dimension weight is required")
    negatives = [name for name, value in weights.items() if value < 0]
    if negatives:
        raise ValueError(f"{label}: negative weights for {negatives}")
    total = math.fsum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ValueError(f"{label}: dimension weights must sum to 1.0 (got {total:.6f})")


@dataclass(frozen=True)
class QuestionProfile:
    """Fixed dimension set and composite weights for one question type."""

    question_type: QuestionType
    weights: Mapping[str, float]

    def __post_init__(self) -> None:
        validate_weights(self.weights, label=f"profile {self.question_type.value!r}")

    @property
    def dimensions(self) -> tuple[str, ...]:
        return tuple(self.weights)

    def composite(self, scores: Mapping[str, float]) -> float:
        return math.fsum(scores[name] * weight for name, weight in self.weights.items())


class ProfileRegistry:
    """Lookup of question profiles keyed by question type."""

    def __init__(self, profiles: Mapping[QuestionType, QuestionProfile]):
        missing = [qtype.value for qtype in QuestionType if qtype not in profiles]
        if missing:
            raise ValueError(f"Missing question profiles for: {missing}")
        self._profiles = dict(profiles)

    def get(self, question_type: QuestionType | str) -> QuestionProfile:
        return self._profiles[QuestionType.parse(question_type)]

    def dimensions(self) -> list[str]:
        """All dimension names across profiles, first-seen order."""
        seen: dict[str, None] = {}
        for profile in self._profiles.values():
            for name in profile.dimensions:
                seen.setdefault(name, None)
        return list(seen)


def build_profiles(overrides: Mapping[str, Any] | None = None) -> ProfileRegistry:
    """Build the registry from defaults, replacing whole profiles from ``overrides``.

    ``overrides`` maps a question type to either a weights mapping or a
    mapping with a ``weights`` key, as found in YAML configuration.
    """
    weights_by_type = {qtype: dict(weights) for qtype, weights in DEFAULT_PROFILE_WEIGHTS.items()}
    for raw_type, payload in (overrides or {}).items():
        qtype = QuestionType.parse(raw_type)
        weights = payload.get("weights", payload) if isinstance(payload, Mapping) else payload
        weights_by_type[qtype] = {str(name): float(value) for name, value in dict(weights).items()}
    return ProfileRegistry(
        {qtype: QuestionProfile(qtype, weights) for qtype, weights in weights_by_type.items()}
    )


__all__ = [
    "QuestionProfile",
    "ProfileRegistry",
    "build_profiles",
    "validate_weights",
    "DEFAULT_PROFILE_WEIGHTS",
    "RELEVANCE",
    "CLARITY",
    "DEPTH",
    "STRUCTURE",
    "SELF_REFLECTION",
]
