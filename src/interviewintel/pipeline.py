"""Transcript replay pipeline assembly and execution."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pendulum
import structlog
from pydantic import ValidationError

from . import __version__
from .errors import EmptySession
from .schemas import (
    ResponseAnalysisRecord,
    SessionRecord,
    SessionSummaryRecord,
    Transcript,
)
from .service import InterviewService


class TranscriptLoadError(ValueError):
    """Raised when a transcript file cannot be read or validated."""


class TranscriptLoader:
    """Load interview transcript documents."""

    def load(self, path: Path) -> Transcript:
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise TranscriptLoadError(f"Invalid transcript JSON: {exc}") from exc
        try:
            return Transcript.model_validate(data)
        except ValidationError as exc:
            raise TranscriptLoadError(f"Invalid transcript: {exc}") from exc


class OutputWriter:
    """Persist replay results."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False))
            handle.write("\n")


class ReplayPipeline:
    """Run a recorded interview through the engine end to end."""

    def __init__(
        self,
        *,
        service: InterviewService,
        loader: TranscriptLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._service = service
        self._loader = loader or TranscriptLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        *,
        transcript_path: Path,
        output_path: Path,
        audit_logger: AuditLogger | None = None,
    ) -> dict[str, Any]:
        transcript = self._loader.load(transcript_path)
        session = self._service.start_session(
            candidate_name=transcript.candidate_name,
            position=transcript.position,
        )
        session_id = session.session_id

        analyses: list[dict[str, Any]] = []
        for entry in transcript.entries:
            event = self._service.add_question(session_id, entry.question, entry.question_type)
            if entry.response is None:
                continue
            analysis = self._service.analyze(session_id, event.index, entry.response)
            record = ResponseAnalysisRecord.from_analysis(analysis).model_dump(mode="json")
            analyses.append(record)

            if audit_logger:
                audit_logger.append(
                    {
                        "session_id": session_id,
                        "question_index": analysis.question_index,
                        "version": analysis.version,
                        "strategy": analysis.strategy,
                        "overall_score": analysis.overall_score,
                        "dimensions": record["dimensions"],
                        "justification": analysis.justification,
                        "recorded_at": pendulum.now("UTC").to_iso8601_string(),
                    }
                )

            self._logger.info(
                "replay.result",
                session_id=session_id,
                question_index=analysis.question_index,
                question_type=analysis.question_type.value,
                overall_score=analysis.overall_score,
            )

        if transcript.end_session:
            self._service.end_session(session_id)

        summary: dict[str, Any] | None
        try:
            summary = SessionSummaryRecord.from_summary(
                self._service.summarize(session_id)
            ).model_dump(mode="json")
        except EmptySession:
            summary = None
            self._logger.warning("replay.no_answers", session_id=session_id)

        final_session = self._service.get_session(session_id)
        payload = {
            "metadata": {
                "session_id": session_id,
                "question_count": len(final_session.questions),
                "answered_count": len(analyses),
                "strategy": self._service.strategy_name,
                "timestamp": pendulum.now("UTC").to_iso8601_string(),
                "app_version": __version__,
            },
            "session": SessionRecord.from_session(final_session).model_dump(
                mode="json",
                exclude={"questions": {"__all__": {"latest_analysis"}}},
            ),
            "analyses": analyses,
            "summary": summary,
        }

        self._writer.write(output_path, payload)
        self._logger.info(
            "replay.completed",
            session_id=session_id,
            answered=len(analyses),
            overall_score=summary["overall_score"] if summary else None,
        )
        return payload


__all__ = [
    "AuditLogger",
    "OutputWriter",
    "ReplayPipeline",
    "TranscriptLoadError",
    "TranscriptLoader",
]
