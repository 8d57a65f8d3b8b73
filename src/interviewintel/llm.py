"""Helpers for constructing model-backed scoring payloads and clients."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Sequence
from urllib import error, request

import structlog

from .errors import ScoringBackendError

if TYPE_CHECKING:  # pragma: no cover
    from .core.models import EvidenceSpan, QuestionType, ResponseMetadata


def build_scoring_payload(
    *,
    question_type: QuestionType,
    dimensions: Sequence[str],
    metadata: ResponseMetadata,
    evidence: Sequence[EvidenceSpan],
    include_response_text: bool = True,
) -> dict[str, Any]:
    """Construct the payload expected by an external scoring backend.

    Evidence is listed with positional indexes; the backend cites evidence by
    index so replies can only reference spans that were actually extracted.
    """

    payload: dict[str, Any] = {
        "question_type": question_type.value,
        "question_text": metadata.question_text,
        "dimensions": list(dimensions),
        "metadata": {
            "char_length": metadata.char_length,
            "word_count": metadata.word_count,
            "elapsed_seconds": metadata.elapsed_seconds,
        },
        "evidence": [
            {
                "index": index,
                "start": span.start,
                "end": span.end,
                "tag": span.tag,
                "rationale": span.rationale,
                "text": span.text,
            }
            for index, span in enumerate(evidence)
        ],
    }
    if include_response_text:
        payload["response_text"] = metadata.response_text
    return payload


class HTTPScoringClient:
    """Simple HTTP client for a model scoring API."""

    def __init__(self, endpoint: str | None, api_key: str | None = None, *, timeout: float = 10.0):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    async def score(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._endpoint:
            raise ScoringBackendError("no scoring endpoint configured")
        return await asyncio.to_thread(self._post, payload)

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = request.Request(self._endpoint, data=data, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self._timeout) as resp:
                body = resp.read().decode("utf-8")
                return json.loads(body) if body else {}
        except (error.URLError, TimeoutError) as exc:  # pragma: no cover - network path
            self._logger.warning("scoring.request_failed", error=str(exc))
            raise ScoringBackendError(f"scoring request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ScoringBackendError("scoring backend returned invalid JSON") from exc
