"""Dependency injection container for the interview engine."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .core import (
    AnalyzerConfig,
    EvidenceExtractor,
    EvidenceExtractorConfig,
    ResponseAnalyzer,
    RuleBasedScoringStrategy,
    SessionAggregator,
    SessionAggregatorConfig,
    build_profiles,
)
from .core.strategies import ModelBackedScoringConfig, RuleBasedScoringConfig, init_model_strategy
from .llm import HTTPScoringClient
from .pipeline import ReplayPipeline
from .service import InterviewService
from .storage import SessionLockRegistry, init_session_store

DEFAULT_SETTINGS: dict[str, Any] = {"engine": {"strategy": "rule_based"}}


class EngineContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration(default=DEFAULT_SETTINGS)

    session_store = providers.Resource(init_session_store)
    session_locks = providers.Singleton(SessionLockRegistry)

    profiles = providers.Singleton(build_profiles)
    evidence_extractor = providers.Singleton(EvidenceExtractor)

    rule_based_strategy = providers.Singleton(RuleBasedScoringStrategy, profiles=profiles)
    scoring_client = providers.Singleton(HTTPScoringClient, endpoint=None)
    model_strategy = providers.Resource(
        init_model_strategy,
        client=scoring_client,
        fallback=rule_based_strategy,
        profiles=profiles,
    )

    scoring_strategy = providers.Selector(
        config.engine.strategy,
        rule_based=rule_based_strategy,
        model=model_strategy,
    )

    analyzer = providers.Singleton(
        ResponseAnalyzer,
        extractor=evidence_extractor,
        strategy=scoring_strategy,
        profiles=profiles,
    )
    aggregator = providers.Singleton(SessionAggregator)

    service = providers.Singleton(
        InterviewService,
        store=session_store,
        analyzer=analyzer,
        aggregator=aggregator,
        locks=session_locks,
    )

    pipeline = providers.Factory(ReplayPipeline, service=service)


def create_container(*, settings: dict | None = None) -> EngineContainer:
    """Instantiate container with optional overrides."""

    container = EngineContainer()

    if not settings:
        return container

    engine_settings = settings.get("engine", {}) if isinstance(settings, dict) else {}
    if engine_settings:
        container.config.from_dict({"engine": engine_settings})

    if settings.get("profiles"):
        container.profiles.override(
            providers.Singleton(build_profiles, overrides=settings["profiles"])
        )

    if "extractor" in settings:
        extractor_config = EvidenceExtractorConfig(**settings["extractor"])
        container.evidence_extractor.override(
            providers.Singleton(EvidenceExtractor, config=extractor_config)
        )

    scoring_settings = settings.get("scoring") or {}
    if scoring_settings:
        scoring_config = RuleBasedScoringConfig(**scoring_settings)
        container.rule_based_strategy.override(
            providers.Singleton(
                RuleBasedScoringStrategy,
                profiles=container.profiles,
                config=scoring_config,
            )
        )

    analyzer_settings = dict(settings.get("analyzer") or {})
    # neutral defaults follow the scoring configuration unless set explicitly
    for key in ("neutral_score", "confidence_floor"):
        if key in scoring_settings:
            analyzer_settings.setdefault(key, scoring_settings[key])
    if analyzer_settings:
        analyzer_config = AnalyzerConfig(**analyzer_settings)
        container.analyzer.override(
            providers.Singleton(
                ResponseAnalyzer,
                extractor=container.evidence_extractor,
                strategy=container.scoring_strategy,
                profiles=container.profiles,
                config=analyzer_config,
            )
        )

    if "aggregator" in settings:
        aggregator_config = SessionAggregatorConfig(**settings["aggregator"])
        container.aggregator.override(
            providers.Singleton(SessionAggregator, config=aggregator_config)
        )

    if "model" in settings:
        model_settings = settings["model"]
        timeout = float(model_settings.get("timeout_seconds", ModelBackedScoringConfig.timeout_seconds))
        container.scoring_client.override(
            providers.Singleton(
                HTTPScoringClient,
                model_settings.get("endpoint"),
                model_settings.get("api_key"),
                timeout=timeout,
            )
        )
        container.model_strategy.override(
            providers.Resource(
                init_model_strategy,
                client=container.scoring_client,
                fallback=container.rule_based_strategy,
                profiles=container.profiles,
                config=ModelBackedScoringConfig(timeout_seconds=timeout),
            )
        )

    return container
