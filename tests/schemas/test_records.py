from __future__ import annotations

import json

import pendulum
import pytest
from pydantic import ValidationError

from interviewintel.core import EvidenceExtractor, ResponseAnalyzer, RuleBasedScoringStrategy, build_profiles
from interviewintel.core.models import InterviewSession, QuestionEvent, QuestionType
from interviewintel.schemas import (
    AnalyzeRequest,
    ResponseAnalysisRecord,
    SessionRecord,
    Transcript,
)

ASKED_AT = pendulum.datetime(2024, 5, 1, 9, 0, tz="UTC")
ANSWER = (
    "For example, when our queue backed up I profiled the consumers because throughput "
    "had dropped to 300 requests per second. As a result we doubled the worker pool."
)


def build_analyzed_event() -> QuestionEvent:
    profiles = build_profiles()
    analyzer = ResponseAnalyzer(
        extractor=EvidenceExtractor(),
        strategy=RuleBasedScoringStrategy(profiles=profiles),
        profiles=profiles,
        now_provider=lambda: ASKED_AT.add(minutes=2),
    )
    event = QuestionEvent(
        index=0,
        text="Describe a throughput problem you solved.",
        question_type=QuestionType.TECHNICAL,
        created_at=ASKED_AT,
    )
    event.mark_asked(ASKED_AT)
    analyzer.analyze(event, ANSWER, session_id="S-1")
    return event


def test_analysis_record_round_trips_through_json():
    analysis = build_analyzed_event().analysis
    assert analysis is not None

    record = ResponseAnalysisRecord.from_analysis(analysis)
    restored = ResponseAnalysisRecord.model_validate_json(record.model_dump_json()).to_analysis()

    assert restored.overall_score == analysis.overall_score
    assert restored.evidence == analysis.evidence
    assert restored.question_type is QuestionType.TECHNICAL
    for name, result in analysis.dimensions.items():
        assert restored.dimensions[name].score == result.score
        assert restored.dimensions[name].confidence == result.confidence
        assert restored.dimensions[name].evidence == result.evidence
    assert restored.created_at == analysis.created_at


def test_analysis_record_json_shape():
    analysis = build_analyzed_event().analysis
    payload = json.loads(ResponseAnalysisRecord.from_analysis(analysis).model_dump_json())

    assert payload["strategy"] == "rule_based"
    assert payload["version"] == 1
    span = payload["evidence"][0]
    assert set(span) == {"start", "end", "tag", "rationale", "text"}
    assert set(payload["dimensions"]) == {"relevance", "depth", "structure"}


def test_analysis_record_rejects_unknown_question_type():
    payload = ResponseAnalysisRecord.from_analysis(build_analyzed_event().analysis).model_dump()
    payload["question_type"] = "riddle"
    with pytest.raises(ValidationError):
        ResponseAnalysisRecord.model_validate(payload)


def test_session_record_includes_latest_analysis():
    session = InterviewSession(session_id="S-1", created_at=ASKED_AT, candidate_name="Ada")
    session.questions.append(build_analyzed_event())

    record = SessionRecord.from_session(session)
    assert record.status == "active"
    assert record.questions[0].state == "answered"
    assert record.questions[0].analysis_versions == 1
    assert record.questions[0].latest_analysis is not None


def test_analyze_request_validation():
    request = AnalyzeRequest(session_id="S-1", question_index=2, response_text="Hello")
    assert request.question_index == 2

    with pytest.raises(ValidationError):
        AnalyzeRequest(session_id="S-1", question_index=-1)
    with pytest.raises(ValidationError):
        AnalyzeRequest(session_id="", question_index=0)
    with pytest.raises(ValidationError):
        AnalyzeRequest(session_id="S-1", question_index=0, extra="nope")


def test_transcript_parses_question_types():
    transcript = Transcript.model_validate(
        {
            "position": "SRE",
            "entries": [
                {"question": "Tell me about an outage.", "question_type": "Behavioral", "response": "..."},
                {"question": "Any questions for us?", "question_type": "situational"},
            ],
        }
    )
    assert transcript.entries[0].question_type is QuestionType.BEHAVIORAL
    assert transcript.entries[1].response is None
    assert transcript.end_session is True

    with pytest.raises(ValidationError):
        Transcript.model_validate({"entries": [{"question": "Q", "question_type": "trivia"}]})
