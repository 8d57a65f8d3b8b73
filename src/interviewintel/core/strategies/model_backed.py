"""Model-backed dimension scoring with timeout and rule-based fallback."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Protocol, Sequence, runtime_checkable

import structlog

from ...errors import ScoringBackendError
from ...llm import build_scoring_payload
from ..models import DimensionScore, EvidenceSpan, QuestionType, ResponseMetadata
from ..profiles import ProfileRegistry, build_profiles
from .rule_based import RuleBasedScoringStrategy


@runtime_checkable
class ScoringClient(Protocol):
    """Asynchronous backend producing raw dimension scores for a payload."""

    async def score(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Return ``{"dimensions": {name: {"score", "confidence", "evidence"}}}``."""


@dataclass
class ModelBackedScoringConfig:
    """Configuration for model-backed scoring."""

    timeout_seconds: float = 5.0
    grace_seconds: float = 1.0
    max_workers: int = 4
    include_response_text: bool = True


class ModelBackedScoringStrategy:
    """Score through an external backend, falling back to rule-based scores.

    The backend call is awaited on a private event loop in a worker thread and
    bounded by ``timeout_seconds``. Timeouts, backend errors and malformed
    replies yield the rule-based result; dimensions missing from a valid reply
    are filled from it.
    """

    name = "model"

    def __init__(
        self,
        *,
        client: ScoringClient,
        fallback: RuleBasedScoringStrategy | None = None,
        profiles: ProfileRegistry | None = None,
        config: ModelBackedScoringConfig | None = None,
    ) -> None:
        self._client = client
        self._profiles = profiles or build_profiles()
        self._fallback = fallback or RuleBasedScoringStrategy(profiles=self._profiles)
        self._config = config or ModelBackedScoringConfig()
        self._executor = ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="model-scoring",
        )
        self._logger = structlog.get_logger(__name__)

    def score(
        self,
        question_type: QuestionType | str,
        metadata: ResponseMetadata,
        evidence: Sequence[EvidenceSpan],
    ) -> dict[str, DimensionScore]:
        profile = self._profiles.get(question_type)
        baseline = self._fallback.score(profile.question_type, metadata, evidence)
        payload = build_scoring_payload(
            question_type=profile.question_type,
            dimensions=profile.dimensions,
            metadata=metadata,
            evidence=evidence,
            include_response_text=self._config.include_response_text,
        )

        try:
            reply = self._await_backend(payload)
            parsed = self._parse_reply(reply, profile.dimensions, evidence)
        except ScoringBackendError as exc:
            self._logger.warning(
                "scoring.model_fallback",
                question_type=profile.question_type.value,
                reason=exc.message,
            )
            return baseline

        missing = [name for name in profile.dimensions if name not in parsed]
        if missing:
            self._logger.info("scoring.model_partial", missing_dimensions=missing)
        return {name: parsed.get(name, baseline[name]) for name in profile.dimensions}

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _bounded_call(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.wait_for(
            self._client.score(payload),
            timeout=self._config.timeout_seconds,
        )

    def _await_backend(self, payload: dict[str, Any]) -> Any:
        future = self._executor.submit(asyncio.run, self._bounded_call(payload))
        try:
            return future.result(
                timeout=self._config.timeout_seconds + self._config.grace_seconds
            )
        except (asyncio.TimeoutError, FutureTimeoutError) as exc:
            future.cancel()
            raise ScoringBackendError(
                f"scoring backend timed out after {self._config.timeout_seconds}s"
            ) from exc
        except ScoringBackendError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ScoringBackendError(f"scoring backend failed: {exc}") from exc

    @staticmethod
    def _parse_reply(
        reply: Any,
        dimensions: Sequence[str],
        evidence: Sequence[EvidenceSpan],
    ) -> dict[str, DimensionScore]:
        if not isinstance(reply, Mapping) or not isinstance(reply.get("dimensions"), Mapping):
            raise ScoringBackendError("scoring backend reply has no 'dimensions' mapping")

        parsed: dict[str, DimensionScore] = {}
        for name in dimensions:
            entry = reply["dimensions"].get(name)
            if not isinstance(entry, Mapping):
                continue
            try:
                score = float(entry["score"])
                confidence = float(entry.get("confidence", 0.0))
            except (KeyError, TypeError, ValueError):
                continue
            cited: list[EvidenceSpan] = []
            for index in entry.get("evidence") or []:
                # only spans the extractor produced may be cited
                if isinstance(index, int) and 0 <= index < len(evidence):
                    cited.append(evidence[index])
            parsed[name] = DimensionScore(
                score=max(0.0, min(100.0, score)),
                confidence=max(0.0, min(1.0, confidence)),
                evidence=tuple(dict.fromkeys(cited)),
            )
        return parsed


def init_model_strategy(
    *,
    client: ScoringClient,
    fallback: RuleBasedScoringStrategy | None = None,
    profiles: ProfileRegistry | None = None,
    config: ModelBackedScoringConfig | None = None,
) -> Iterator[ModelBackedScoringStrategy]:
    """Resource initializer: the worker pool is shut down with the container."""
    strategy = ModelBackedScoringStrategy(
        client=client,
        fallback=fallback,
        profiles=profiles,
        config=config,
    )
    try:
        yield strategy
    finally:
        strategy.close()


__all__ = [
    "ModelBackedScoringStrategy",
    "ModelBackedScoringConfig",
    "ScoringClient",
    "init_model_strategy",
]
