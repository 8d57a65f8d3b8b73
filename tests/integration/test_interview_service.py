from __future__ import annotations

import threading
import time
from itertools import count

import pendulum
import pytest

from interviewintel.core import (
    EvidenceExtractor,
    ResponseAnalyzer,
    RuleBasedScoringStrategy,
    SessionAggregator,
    build_profiles,
)
from interviewintel.core.models import QuestionState, SessionStatus
from interviewintel.errors import (
    EmptySession,
    QuestionNotFound,
    SessionClosed,
    SessionNotFound,
    StateConflict,
)
from interviewintel.schemas import AnalyzeRequest, ResponseAnalysisRecord
from interviewintel.service import InterviewService
from interviewintel.storage import InMemorySessionStore

STARTED_AT = pendulum.datetime(2024, 5, 1, 9, 0, tz="UTC")

ANSWERS = [
    "Firstly, I reproduced the bug. Because the cache key ignored the tenant, data leaked. "
    "As a result we fixed the schema and latency stayed flat.",
    "I led the migration to a queue. For example, retries dropped by 70% within 2 weeks.",
    "Um, I guess I would maybe look at the logs.",
    "In hindsight I learned to write the benchmark first, so that the tradeoff is visible.",
]


class SlowStrategy(RuleBasedScoringStrategy):
    """Rule-based scoring that holds the caller long enough to overlap threads."""

    def score(self, question_type, metadata, evidence):
        time.sleep(0.05)
        return super().score(question_type, metadata, evidence)


class FailingStrategy:
    name = "failing"

    def score(self, question_type, metadata, evidence):
        raise RuntimeError("scorer crashed")


def build_service(strategy=None) -> InterviewService:
    profiles = build_profiles()
    ticks = count()
    clock = lambda: STARTED_AT.add(seconds=next(ticks))  # noqa: E731
    ids = (f"S-{index}" for index in count(1))
    return InterviewService(
        store=InMemorySessionStore(),
        analyzer=ResponseAnalyzer(
            extractor=EvidenceExtractor(),
            strategy=strategy or RuleBasedScoringStrategy(profiles=profiles),
            profiles=profiles,
            now_provider=clock,
        ),
        aggregator=SessionAggregator(now_provider=clock),
        id_factory=lambda: next(ids),
        now_provider=clock,
    )


def test_session_lifecycle_produces_summary():
    service = build_service()
    session = service.start_session(candidate_name="Ada", position="Backend Engineer")
    assert session.session_id == "S-1"

    for index, answer in enumerate(ANSWERS):
        event = service.add_question(session.session_id, f"Question {index}", "technical")
        assert event.index == index
        assert event.state is QuestionState.ASKED
        service.analyze(session.session_id, index, answer)

    service.add_question(session.session_id, "Anything else?", "situational")
    summary = service.summarize(session.session_id)
    assert summary.answered_count == 4
    assert summary.question_count == 5
    assert summary.final is False
    assert all(stats.trend != "insufficient-data" for stats in summary.dimensions.values())

    ended = service.end_session(session.session_id)
    assert ended.status is SessionStatus.ENDED
    assert service.summarize(session.session_id).final is True

    analyses = service.get_analyses(session.session_id)
    assert [analysis.question_index for analysis in analyses] == [0, 1, 2, 3]
    assert analyses[2].overall_score < analyses[0].overall_score


def test_ended_session_rejects_mutations():
    service = build_service()
    session_id = service.start_session().session_id
    service.add_question(session_id, "Q0", "behavioral")
    service.add_question(session_id, "Q1", "behavioral")
    service.analyze(session_id, 0, ANSWERS[3])
    service.end_session(session_id)

    with pytest.raises(SessionClosed):
        service.add_question(session_id, "Q2", "behavioral")
    with pytest.raises(SessionClosed):
        service.analyze(session_id, 1, ANSWERS[1])
    with pytest.raises(SessionClosed):
        service.reanalyze(session_id, 0)
    with pytest.raises(SessionClosed):
        service.end_session(session_id)
    assert len(service.get_session(session_id).questions) == 2


def test_concurrent_analyses_of_one_question_yield_single_success():
    service = build_service(SlowStrategy())
    session_id = service.start_session().session_id
    service.add_question(session_id, "How would you scale the API?", "technical")

    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def worker(answer: str) -> None:
        barrier.wait()
        try:
            result: object = service.analyze(session_id, 0, answer)
        except StateConflict as exc:
            result = exc
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(answer,)) for answer in ANSWERS[:2]]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    conflicts = [item for item in outcomes if isinstance(item, StateConflict)]
    assert len(outcomes) == 2
    assert len(conflicts) == 1
    assert len(service.get_analysis_history(session_id, 0)) == 1


def test_sessions_are_independent_under_concurrency():
    service = build_service(SlowStrategy())
    session_ids = [service.start_session().session_id for _ in range(4)]
    for session_id in session_ids:
        service.add_question(session_id, "Describe a conflict.", "behavioral")

    threads = [
        threading.Thread(target=service.analyze, args=(session_id, 0, ANSWERS[3]))
        for session_id in session_ids
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    for session_id in session_ids:
        assert service.get_session(session_id).questions[0].state is QuestionState.ANSWERED


def test_failed_analysis_does_not_change_stored_state():
    service = build_service(FailingStrategy())
    session_id = service.start_session().session_id
    service.add_question(session_id, "Q0", "technical")

    with pytest.raises(RuntimeError):
        service.analyze(session_id, 0, ANSWERS[0])

    event = service.get_session(session_id).questions[0]
    assert event.state is QuestionState.ASKED
    assert event.analyses == []
    with pytest.raises(EmptySession):
        service.summarize(session_id)


def test_reanalysis_keeps_history():
    service = build_service()
    session_id = service.start_session().session_id
    service.add_question(session_id, "Q0", "technical")
    first = service.analyze(session_id, 0, "Okay.")
    second = service.reanalyze(session_id, 0, ANSWERS[0])

    history = service.get_analysis_history(session_id, 0)
    assert [analysis.version for analysis in history] == [1, 2]
    assert history[0].overall_score == first.overall_score
    assert service.get_analyses(session_id) == [second]


def test_deferred_question_must_be_marked_asked():
    service = build_service()
    session_id = service.start_session().session_id
    event = service.add_question(session_id, "Q0", "situational", asked=False)
    assert event.state is QuestionState.CREATED

    with pytest.raises(StateConflict):
        service.analyze(session_id, 0, ANSWERS[2])
    service.mark_asked(session_id, 0)
    assert service.analyze(session_id, 0, ANSWERS[2]).version == 1


def test_unknown_identifiers_raise_not_found():
    service = build_service()
    with pytest.raises(SessionNotFound):
        service.analyze("missing", 0, "text")

    session_id = service.start_session().session_id
    with pytest.raises(QuestionNotFound):
        service.analyze(session_id, 3, "text")

    service.delete_session(session_id)
    with pytest.raises(SessionNotFound):
        service.get_session(session_id)
    assert service.list_sessions() == []


def test_handle_analyze_request_returns_record():
    service = build_service()
    session_id = service.start_session().session_id
    service.add_question(session_id, "How do you test a queue consumer?", "technical")

    record = service.handle_analyze_request(
        AnalyzeRequest(session_id=session_id, question_index=0, response_text=ANSWERS[1])
    )
    assert isinstance(record, ResponseAnalysisRecord)
    assert record.session_id == session_id
    assert record.strategy == "rule_based"
