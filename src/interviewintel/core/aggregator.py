"""Session-level aggregation of response analyses."""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Callable, Sequence

import pendulum

from ..errors import EmptySession
from .analyzer import DEFAULT_FOLLOW_UPS
from .models import (
    DimensionStats,
    InterviewSession,
    ResponseAnalysis,
    ResponseOutlier,
    SessionSummary,
    TrendType,
)


@dataclass
class SessionAggregatorConfig:
    """Thresholds for summarizing a session."""

    strength_threshold: float = 75.0
    weakness_threshold: float = 40.0
    trend_min_samples: int = 4
    trend_delta: float = 5.0
    outlier_min_samples: int = 4
    outlier_z: float = 1.5
    follow_up_prompts: dict[str, str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.weakness_threshold >= self.strength_threshold:
            raise ValueError("weakness_threshold must be below strength_threshold")
        if self.trend_min_samples < 2:
            raise ValueError("trend_min_samples must be at least 2")
        prompts = dict(DEFAULT_FOLLOW_UPS)
        prompts.update(self.follow_up_prompts or {})
        self.follow_up_prompts = prompts


@dataclass(slots=True)
class RunningSummary:
    """Accumulated per-dimension scores and composites, in answer order."""

    dimension_scores: dict[str, list[float]] = field(default_factory=dict)
    composites: list[tuple[int, float]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.composites)


class SessionAggregator:
    """Fold analyses into running and final session summaries."""

    def __init__(
        self,
        *,
        config: SessionAggregatorConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._config = config or SessionAggregatorConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))

    def start(self) -> RunningSummary:
        return RunningSummary()

    def fold(self, state: RunningSummary, analysis: ResponseAnalysis) -> RunningSummary:
        """Add one analysis. Only the dimensions its question type declares are counted."""
        for name, result in analysis.dimensions.items():
            state.dimension_scores.setdefault(name, []).append(result.score)
        state.composites.append((analysis.question_index, analysis.overall_score))
        return state

    def summarize(self, session: InterviewSession) -> SessionSummary:
        answered = session.answered_questions()
        if not answered:
            raise EmptySession(session.session_id)

        state = self.start()
        for event in answered:
            # latest version of each answer
            self.fold(state, event.analysis)  # type: ignore[arg-type]

        return self.render(
            state,
            session_id=session.session_id,
            question_count=len(session.questions),
            final=session.is_ended,
        )

    def render(
        self,
        state: RunningSummary,
        *,
        session_id: str,
        question_count: int,
        final: bool = False,
    ) -> SessionSummary:
        if not state.count:
            raise EmptySession(session_id)

        dimensions = {
            name: self._dimension_stats(scores, answered=state.count)
            for name, scores in state.dimension_scores.items()
        }
        strengths: list[str] = []
        weaknesses: list[str] = []
        for name, stats in dimensions.items():
            if stats.mean >= self._config.strength_threshold:
                strengths.append(name)
            elif stats.mean <= self._config.weakness_threshold:
                weaknesses.append(name)

        composites = [score for _, score in state.composites]
        return SessionSummary(
            session_id=session_id,
            question_count=question_count,
            answered_count=state.count,
            dimensions=dimensions,
            strengths=strengths,
            weaknesses=weaknesses,
            overall_score=round(statistics.fmean(composites), 2),
            outliers=self._outliers(state.composites),
            follow_up_suggestions=[
                self._config.follow_up_prompts[name]
                for name in weaknesses
                if name in self._config.follow_up_prompts
            ],
            final=final,
            generated_at=self._now_provider(),
        )

    def _dimension_stats(self, scores: Sequence[float], *, answered: int) -> DimensionStats:
        return DimensionStats(
            mean=round(statistics.fmean(scores), 2),
            count=len(scores),
            minimum=min(scores),
            maximum=max(scores),
            trend=self._trend(scores, answered),
        )

    def _trend(self, scores: Sequence[float], answered: int) -> TrendType:
        """Gate on answered questions, then compare the halves of this dimension's samples."""
        if answered < self._config.trend_min_samples:
            return "insufficient-data"
        count = len(scores)
        if count < 2:
            # a single sample shows no change
            return "stable"
        half = count // 2
        first = statistics.fmean(scores[:half])
        second = statistics.fmean(scores[count - half :])
        delta = second - first
        if delta > self._config.trend_delta:
            return "improving"
        if delta < -self._config.trend_delta:
            return "declining"
        return "stable"

    def _outliers(self, composites: Sequence[tuple[int, float]]) -> list[ResponseOutlier]:
        if len(composites) < self._config.outlier_min_samples:
            return []
        values = [score for _, score in composites]
        mean = statistics.fmean(values)
        spread = statistics.pstdev(values)
        if spread == 0:
            return []
        outliers: list[ResponseOutlier] = []
        for index, score in composites:
            deviation = (score - mean) / spread
            if abs(deviation) >= self._config.outlier_z:
                outliers.append(
                    ResponseOutlier(
                        question_index=index,
                        overall_score=score,
                        deviation=round(deviation, 3),
                        direction="above" if deviation > 0 else "below",
                    )
                )
        return outliers


__all__ = ["SessionAggregator", "SessionAggregatorConfig", "RunningSummary"]
