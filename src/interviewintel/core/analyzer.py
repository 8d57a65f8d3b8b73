"""Response analysis orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import pendulum
import structlog

from ..errors import StateConflict
from . import evidence as tags
from .evidence import EvidenceExtractor
from .models import (
    DimensionScore,
    EvidenceSpan,
    QuestionEvent,
    QuestionState,
    ResponseAnalysis,
    ResponseMetadata,
)
from .profiles import (
    CLARITY,
    DEPTH,
    RELEVANCE,
    SELF_REFLECTION,
    STRUCTURE,
    ProfileRegistry,
    QuestionProfile,
)
from .strategies import ScoringStrategy

DEFAULT_FOLLOW_UPS: dict[str, str] = {
    RELEVANCE: "Ask the candidate to connect the answer back to the original question.",
    CLARITY: "Ask for a short, direct restatement of the main point.",
    DEPTH: "Ask for a concrete example with measurable results.",
    STRUCTURE: "Ask the candidate to walk through the answer step by step.",
    SELF_REFLECTION: "Ask what they learned and what they would do differently next time.",
}

DEFAULT_EVIDENCE_PRIORITY: tuple[str, ...] = (
    tags.QUANTIFIED_CLAIM,
    tags.EXAMPLE_GIVEN,
    tags.SELF_REFLECTION,
    tags.OWNERSHIP,
    tags.OUTCOME_STATEMENT,
    tags.CAUSAL_REASONING,
    tags.STRUCTURAL_MARKER,
    tags.KEYWORD_HIT,
    tags.HEDGING,
    tags.FILLER,
)

_SCORE_BANDS: tuple[tuple[float, str], ...] = (
    (75.0, "high"),
    (55.0, "well"),
    (45.0, "moderately"),
)


@dataclass
class AnalyzerConfig:
    """Configuration for composing response analyses."""

    neutral_score: float = 50.0
    confidence_floor: float = 0.2
    max_evidence_per_dimension: int = 2
    snippet_length: int = 40
    suggestion_threshold: float = 45.0
    follow_up_prompts: dict[str, str] = None  # type: ignore[assignment]
    evidence_priority: list[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        prompts = dict(DEFAULT_FOLLOW_UPS)
        prompts.update(self.follow_up_prompts or {})
        self.follow_up_prompts = prompts
        if self.evidence_priority is None:
            self.evidence_priority = list(DEFAULT_EVIDENCE_PRIORITY)


class ResponseAnalyzer:
    """Run extraction and scoring for one response and compose the analysis."""

    def __init__(
        self,
        *,
        extractor: EvidenceExtractor,
        strategy: ScoringStrategy,
        profiles: ProfileRegistry,
        config: AnalyzerConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._extractor = extractor
        self._strategy = strategy
        self._profiles = profiles
        self._config = config or AnalyzerConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def analyze(
        self,
        question_event: QuestionEvent,
        response_text: str,
        *,
        session_id: str = "",
        responded_at: pendulum.DateTime | None = None,
    ) -> ResponseAnalysis:
        """Analyze the first response to an asked question and attach it."""
        if question_event.state is not QuestionState.ASKED:
            raise StateConflict(
                f"Question {question_event.index} is {question_event.state.value}; "
                "only asked questions can be analyzed (use reanalyze for answered ones)",
                question_index=question_event.index,
                state=question_event.state.value,
            )
        analysis = self._build(question_event, response_text, session_id, responded_at)
        question_event.attach_analysis(analysis)
        self._log_result(analysis)
        return analysis

    def reanalyze(
        self,
        question_event: QuestionEvent,
        response_text: str | None = None,
        *,
        session_id: str = "",
        responded_at: pendulum.DateTime | None = None,
    ) -> ResponseAnalysis:
        """Append a new analysis version to an answered question."""
        previous = question_event.analysis
        if question_event.state is not QuestionState.ANSWERED or previous is None:
            raise StateConflict(
                f"Question {question_event.index} is {question_event.state.value}; "
                "only answered questions can be re-analyzed",
                question_index=question_event.index,
                state=question_event.state.value,
            )
        text = previous.response_text if response_text is None else response_text
        analysis = self._build(question_event, text, session_id, responded_at)
        question_event.attach_analysis(analysis, reanalysis=True)
        self._log_result(analysis)
        return analysis

    def _build(
        self,
        question_event: QuestionEvent,
        response_text: str,
        session_id: str,
        responded_at: pendulum.DateTime | None,
    ) -> ResponseAnalysis:
        profile = self._profiles.get(question_event.question_type)
        created_at = responded_at or self._now_provider()
        metadata = ResponseMetadata.build(
            question_type=profile.question_type,
            response_text=response_text,
            question_text=question_event.text,
            elapsed_seconds=self._elapsed_seconds(question_event, created_at),
        )
        spans = self._extractor.extract(
            response_text,
            profile.question_type,
            question_text=question_event.text,
        )
        raw_scores = self._strategy.score(profile.question_type, metadata, spans)
        dimensions = self._complete_dimensions(raw_scores, profile, spans)
        overall = round(
            max(0.0, min(100.0, profile.composite({k: v.score for k, v in dimensions.items()}))),
            2,
        )

        return ResponseAnalysis(
            session_id=session_id,
            question_index=question_event.index,
            version=len(question_event.analyses) + 1,
            question_type=profile.question_type,
            response_text=response_text,
            metadata=metadata,
            dimensions=dimensions,
            evidence=tuple(spans),
            overall_score=overall,
            justification=self.build_justification(response_text, dimensions),
            suggestions=self._suggestions(dimensions),
            strategy=self._strategy.name,
            created_at=created_at,
        )

    def _complete_dimensions(
        self,
        raw_scores: Mapping[str, Any],
        profile: QuestionProfile,
        spans: Sequence[EvidenceSpan],
    ) -> dict[str, DimensionScore]:
        produced = set(spans)
        completed: dict[str, DimensionScore] = {}
        for name in profile.dimensions:
            result = raw_scores.get(name)
            if not isinstance(result, DimensionScore):
                self._logger.warning("analysis.dimension_defaulted", dimension=name)
                completed[name] = DimensionScore(
                    score=self._config.neutral_score,
                    confidence=self._config.confidence_floor,
                )
                continue
            completed[name] = DimensionScore(
                score=round(max(0.0, min(100.0, float(result.score))), 2),
                confidence=round(max(0.0, min(1.0, float(result.confidence))), 3),
                evidence=tuple(span for span in result.evidence if span in produced),
            )
        return completed

    def build_justification(
        self,
        response_text: str,
        dimensions: Mapping[str, DimensionScore],
    ) -> str:
        """Render one human-readable line per dimension citing its top evidence."""
        return "\n".join(
            self._justify_dimension(name, result, response_text)
            for name, result in dimensions.items()
        )

    def _justify_dimension(self, name: str, result: DimensionScore, response_text: str) -> str:
        label = name.replace("_", " ")
        cited = self._top_evidence(result.evidence)
        if not cited:
            return (
                f"Scored {result.score:.0f}/100 on {label}; "
                "no supporting evidence was detected for this dimension."
            )
        reasons = "; ".join(
            f'{span.rationale} ("{self._snippet(span, response_text)}") '
            f"at characters [{span.start}, {span.end}]"
            for span in cited
        )
        return f"Scored {_band(result.score)} on {label} ({result.score:.0f}/100): {reasons}."

    def _top_evidence(self, spans: Sequence[EvidenceSpan]) -> list[EvidenceSpan]:
        priority = {tag: rank for rank, tag in enumerate(self._config.evidence_priority)}
        ranked = sorted(
            spans,
            key=lambda span: (priority.get(span.tag, len(priority)), span.start, span.end),
        )
        return ranked[: self._config.max_evidence_per_dimension]

    def _snippet(self, span: EvidenceSpan, response_text: str) -> str:
        text = span.text or response_text[span.start : span.end]
        text = " ".join(text.split())
        if len(text) > self._config.snippet_length:
            text = text[: self._config.snippet_length - 3].rstrip() + "..."
        return text.replace('"', "'")

    def _suggestions(self, dimensions: Mapping[str, DimensionScore]) -> tuple[str, ...]:
        suggestions: list[str] = []
        for name, result in dimensions.items():
            if result.score >= self._config.suggestion_threshold:
                continue
            prompt = self._config.follow_up_prompts.get(name)
            if prompt and prompt not in suggestions:
                suggestions.append(prompt)
        return tuple(suggestions)

    @staticmethod
    def _elapsed_seconds(
        question_event: QuestionEvent,
        responded_at: pendulum.DateTime,
    ) -> float | None:
        if question_event.asked_at is None:
            return None
        elapsed = (responded_at - question_event.asked_at).total_seconds()
        return max(0.0, elapsed)

    def _log_result(self, analysis: ResponseAnalysis) -> None:
        self._logger.info(
            "analysis.completed",
            session_id=analysis.session_id,
            question_index=analysis.question_index,
            version=analysis.version,
            strategy=analysis.strategy,
            overall_score=analysis.overall_score,
            evidence_count=len(analysis.evidence),
        )


def _band(score: float) -> str:
    for threshold, label in _SCORE_BANDS:
        if score >= threshold:
            return label
    return "low"


__all__ = ["ResponseAnalyzer", "AnalyzerConfig", "DEFAULT_FOLLOW_UPS"]
