"""Typer CLI entrypoint for the interview engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from .config import load_settings
from .container import create_container
from .errors import InvalidQuestionType
from .logging import configure_logging
from .pipeline import AuditLogger
from .schemas import ResponseAnalysisRecord

app = typer.Typer(help="Interview response analysis CLI.")


def _settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    try:
        return load_settings(config)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid config: {exc}", param_hint="config") from exc


@app.command()
def replay(
    transcript: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Transcript JSON path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Replay a recorded interview and write analyses plus the session summary."""
    settings = _settings(config)
    configure_logging(log_level, command="replay")

    container = create_container(settings=settings)
    container.init_resources()
    try:
        pipeline = container.pipeline()
        audit_logger = AuditLogger(audit_log) if audit_log else None
        payload = pipeline.run(
            transcript_path=transcript,
            output_path=output,
            audit_logger=audit_logger,
        )
    finally:
        container.shutdown_resources()

    typer.echo(
        f"Analyzed {payload['metadata']['answered_count']} responses. Results saved to {output}."
    )


@app.command()
def analyze(
    question: str = typer.Option(..., help="Question text."),
    question_type: str = typer.Option(..., "--type", help="behavioral, technical or situational."),
    response: str = typer.Option(..., help="Candidate response text."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Analyze a single response and print the analysis record as JSON."""
    settings = _settings(config)
    configure_logging(log_level, command="analyze")

    container = create_container(settings=settings)
    container.init_resources()
    try:
        service = container.service()
        session = service.start_session()
        try:
            event = service.add_question(session.session_id, question, question_type)
        except InvalidQuestionType as exc:
            raise typer.BadParameter(str(exc), param_hint="type") from exc
        analysis = service.analyze(session.session_id, event.index, response)
    finally:
        container.shutdown_resources()

    record = ResponseAnalysisRecord.from_analysis(analysis)
    typer.echo(json.dumps(record.model_dump(mode="json"), ensure_ascii=False, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
