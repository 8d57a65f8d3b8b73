from __future__ import annotations

import pytest

from interviewintel.container import create_container
from interviewintel.core import ModelBackedScoringStrategy, RuleBasedScoringStrategy
from interviewintel.pipeline import ReplayPipeline
from interviewintel.schemas.config import load_config
from interviewintel.storage import InMemorySessionStore


def test_default_container_uses_rule_based_strategy():
    container = create_container()

    assert isinstance(container.scoring_strategy(), RuleBasedScoringStrategy)
    assert container.service().strategy_name == "rule_based"
    assert isinstance(container.session_store(), InMemorySessionStore)
    assert isinstance(container.pipeline(), ReplayPipeline)
    container.shutdown_resources()


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "profiles": {"technical": {"weights": {"depth": 0.6, "relevance": 0.4}}},
            "extractor": {"min_keyword_length": 5},
            "scoring": {"neutral_score": 55.0, "short_response_penalty": 15.0},
            "analyzer": {"max_evidence_per_dimension": 3},
            "aggregator": {"strength_threshold": 80.0, "trend_min_samples": 6},
        }
    )

    extractor = container.evidence_extractor()
    strategy = container.rule_based_strategy()
    analyzer = container.analyzer()
    aggregator = container.aggregator()
    profiles = container.profiles()

    assert extractor._config.min_keyword_length == 5
    assert strategy._config.neutral_score == 55.0
    assert strategy._config.short_response_penalty == 15.0
    assert analyzer._config.max_evidence_per_dimension == 3
    assert analyzer._config.neutral_score == 55.0
    assert aggregator._config.strength_threshold == 80.0
    assert aggregator._config.trend_min_samples == 6
    assert profiles.get("technical").dimensions == ("depth", "relevance")
    assert strategy._profiles is profiles


def test_model_strategy_is_selected_from_settings():
    settings = load_config(
        {
            "engine": {"strategy": "model"},
            "model": {"endpoint": "http://localhost:9000/score", "timeout_seconds": 2.5},
        }
    ).to_settings()
    container = create_container(settings=settings)

    strategy = container.scoring_strategy()
    try:
        assert isinstance(strategy, ModelBackedScoringStrategy)
        assert strategy._config.timeout_seconds == 2.5
        assert container.analyzer().strategy_name == "model"
    finally:
        container.shutdown_resources()

    with pytest.raises(RuntimeError):
        strategy._executor.submit(print)
