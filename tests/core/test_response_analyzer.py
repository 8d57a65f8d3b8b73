from __future__ import annotations

from typing import Sequence

import pendulum
import pytest

from interviewintel.core import (
    AnalyzerConfig,
    EvidenceExtractor,
    ResponseAnalyzer,
    RuleBasedScoringStrategy,
    build_profiles,
)
from interviewintel.core.models import (
    DimensionScore,
    EvidenceSpan,
    QuestionEvent,
    QuestionState,
    QuestionType,
    ResponseMetadata,
)
from interviewintel.errors import StateConflict

ASKED_AT = pendulum.datetime(2024, 5, 1, 9, 0, tz="UTC")
ANSWERED_AT = ASKED_AT.add(seconds=90)

TECHNICAL_ANSWER = (
    "Because reads dominated, I put a cache in front of the database. "
    "As a result, latency dropped by 40% for 2 million users."
)


class StubStrategy:
    name = "stub"

    def __init__(self, scores: dict[str, DimensionScore] | None = None, error: Exception | None = None):
        self._scores = scores or {}
        self._error = error
        self.calls: list[tuple[QuestionType, ResponseMetadata, Sequence[EvidenceSpan]]] = []

    def score(self, question_type, metadata, evidence):
        self.calls.append((question_type, metadata, evidence))
        if self._error is not None:
            raise self._error
        return dict(self._scores)


def build_event(
    question_type: QuestionType = QuestionType.TECHNICAL,
    text: str = "How would you reduce read latency?",
    *,
    asked: bool = True,
) -> QuestionEvent:
    event = QuestionEvent(index=0, text=text, question_type=question_type, created_at=ASKED_AT)
    if asked:
        event.mark_asked(ASKED_AT)
    return event


def build_analyzer(strategy=None, **config) -> ResponseAnalyzer:
    profiles = build_profiles()
    return ResponseAnalyzer(
        extractor=EvidenceExtractor(),
        strategy=strategy or RuleBasedScoringStrategy(profiles=profiles),
        profiles=profiles,
        config=AnalyzerConfig(**config),
        now_provider=lambda: ANSWERED_AT,
    )


def test_analyze_answers_question_and_scores_profile_dimensions():
    event = build_event()
    analysis = build_analyzer().analyze(event, TECHNICAL_ANSWER, session_id="S-1")

    assert event.state is QuestionState.ANSWERED
    assert event.analysis is analysis
    assert analysis.version == 1
    assert analysis.session_id == "S-1"
    assert analysis.strategy == "rule_based"
    assert set(analysis.dimensions) == {"relevance", "depth", "structure"}
    assert 0.0 <= analysis.overall_score <= 100.0
    assert analysis.metadata.elapsed_seconds == pytest.approx(90.0)
    assert analysis.created_at == ANSWERED_AT

    weights = build_profiles().get("technical").weights
    expected = sum(weights[name] * result.score for name, result in analysis.dimensions.items())
    assert analysis.overall_score == pytest.approx(round(expected, 2))


def test_dimension_evidence_is_subset_of_extracted_spans():
    analysis = build_analyzer().analyze(build_event(), TECHNICAL_ANSWER)

    extracted = set(analysis.evidence)
    for result in analysis.dimensions.values():
        assert set(result.evidence) <= extracted
        for span in result.evidence:
            assert 0 <= span.start < span.end <= len(TECHNICAL_ANSWER)


def test_justification_cites_evidence_with_offsets():
    analysis = build_analyzer().analyze(build_event(), TECHNICAL_ANSWER)

    lines = analysis.justification.splitlines()
    assert len(lines) == 3
    depth_line = next(line for line in lines if " on depth " in line)
    assert 'cites a specific figure ("40%")' in depth_line
    start = TECHNICAL_ANSWER.index("40%")
    assert f"at characters [{start}, {start + 3}]" in depth_line


def test_justification_without_evidence_uses_fallback_sentence():
    event = build_event(text="Anything else?")
    analysis = build_analyzer().analyze(event, "Okay.")

    assert analysis.evidence == ()
    for line in analysis.justification.splitlines():
        assert line.startswith("Scored 50/100 on ")
        assert line.endswith("no supporting evidence was detected for this dimension.")
    assert analysis.overall_score == 50.0
    assert analysis.suggestions == ()


def test_analyze_twice_raises_state_conflict():
    analyzer = build_analyzer()
    event = build_event()
    analyzer.analyze(event, TECHNICAL_ANSWER)

    with pytest.raises(StateConflict):
        analyzer.analyze(event, "A different answer.")
    assert len(event.analyses) == 1


def test_analyze_requires_asked_question():
    event = build_event(asked=False)
    with pytest.raises(StateConflict):
        build_analyzer().analyze(event, TECHNICAL_ANSWER)
    assert event.state is QuestionState.CREATED
    assert event.analyses == []


def test_reanalyze_appends_new_version_and_keeps_history():
    analyzer = build_analyzer()
    event = build_event()
    first = analyzer.analyze(event, "Okay.")
    second = analyzer.reanalyze(event, TECHNICAL_ANSWER)
    third = analyzer.reanalyze(event)

    assert [item.version for item in event.analyses] == [1, 2, 3]
    assert event.analyses[0] is first
    assert event.analysis is third
    assert third.response_text == second.response_text
    assert second.overall_score != first.overall_score


def test_reanalyze_requires_answered_question():
    with pytest.raises(StateConflict):
        build_analyzer().reanalyze(build_event(), TECHNICAL_ANSWER)


def test_missing_dimensions_are_filled_with_neutral_scores():
    strategy = StubStrategy({"relevance": DimensionScore(score=90.0, confidence=0.9)})
    analysis = build_analyzer(strategy).analyze(build_event(), TECHNICAL_ANSWER)

    assert set(analysis.dimensions) == {"relevance", "depth", "structure"}
    assert analysis.dimensions["depth"] == DimensionScore(score=50.0, confidence=0.2)
    assert analysis.dimensions["structure"] == DimensionScore(score=50.0, confidence=0.2)
    assert analysis.overall_score == pytest.approx(0.35 * 90 + 0.40 * 50 + 0.25 * 50)
    assert analysis.strategy == "stub"


def test_strategy_output_is_clamped_and_foreign_evidence_dropped():
    foreign = EvidenceSpan(start=0, end=4, tag="invented", rationale="not extracted")
    strategy = StubStrategy(
        {
            "relevance": DimensionScore(score=150.0, confidence=1.7, evidence=(foreign,)),
            "depth": DimensionScore(score=-5.0, confidence=-0.1),
            "structure": DimensionScore(score=60.0, confidence=0.5),
        }
    )
    analysis = build_analyzer(strategy).analyze(build_event(), TECHNICAL_ANSWER)

    assert analysis.dimensions["relevance"].score == 100.0
    assert analysis.dimensions["relevance"].confidence == 1.0
    assert analysis.dimensions["relevance"].evidence == ()
    assert analysis.dimensions["depth"].score == 0.0
    assert analysis.dimensions["depth"].confidence == 0.0


def test_strategy_failure_leaves_event_untouched():
    event = build_event()
    with pytest.raises(RuntimeError):
        build_analyzer(StubStrategy(error=RuntimeError("boom"))).analyze(event, TECHNICAL_ANSWER)

    assert event.state is QuestionState.ASKED
    assert event.analyses == []


def test_low_scores_produce_follow_up_suggestions():
    strategy = StubStrategy(
        {
            "relevance": DimensionScore(score=30.0, confidence=0.5),
            "depth": DimensionScore(score=20.0, confidence=0.5),
            "structure": DimensionScore(score=80.0, confidence=0.5),
        }
    )
    analyzer = build_analyzer(strategy, follow_up_prompts={"depth": "Ask for numbers."})
    analysis = analyzer.analyze(build_event(), TECHNICAL_ANSWER)

    assert analysis.suggestions == (
        "Ask the candidate to connect the answer back to the original question.",
        "Ask for numbers.",
    )
    lines = analysis.justification.splitlines()
    assert lines[0] == (
        "Scored 30/100 on relevance; no supporting evidence was detected for this dimension."
    )


def test_justification_bands_and_evidence_limit():
    analyzer = build_analyzer(max_evidence_per_dimension=1)
    spans = (
        EvidenceSpan(start=0, end=7, tag="keyword-hit", rationale="mentions 'latency'", text="latency"),
        EvidenceSpan(start=20, end=23, tag="quantified-claim", rationale="cites a specific figure", text="40%"),
    )
    text = analyzer.build_justification(
        "latency dropped by  40% overall",
        {"depth": DimensionScore(score=80.0, confidence=0.7, evidence=spans)},
    )
    assert text == 'Scored high on depth (80/100): cites a specific figure ("40%") at characters [20, 23].'


def test_evidence_priority_decides_which_spans_are_cited():
    analyzer = build_analyzer(max_evidence_per_dimension=1, evidence_priority=["keyword-hit"])
    spans = (
        EvidenceSpan(start=20, end=23, tag="quantified-claim", rationale="cites a specific figure", text="40%"),
        EvidenceSpan(start=0, end=7, tag="keyword-hit", rationale="mentions 'latency'", text="latency"),
    )
    text = analyzer.build_justification(
        "latency dropped by  40% overall",
        {"depth": DimensionScore(score=80.0, confidence=0.7, evidence=spans)},
    )
    assert text == "Scored high on depth (80/100): mentions 'latency' (\"latency\") at characters [0, 7]."
