"""Pydantic configuration schema for YAML engine settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.evidence import DETECTOR_ORDER
from ..core.models import QuestionType
from ..core.profiles import validate_weights


class EngineSection(BaseModel):
    strategy: Literal["rule_based", "model"] = "rule_based"

    model_config = ConfigDict(extra="forbid")


class ProfileSection(BaseModel):
    weights: dict[str, float]

    model_config = ConfigDict(extra="forbid")

    @field_validator("weights")
    @classmethod
    def _weights_sum_to_one(cls, value: dict[str, float]) -> dict[str, float]:
        validate_weights(value)
        return value


class ExtractorSection(BaseModel):
    keyword_min_similarity: float | None = Field(default=None, ge=0.0, le=100.0)
    min_keyword_length: int | None = Field(default=None, ge=1)
    lexicons: dict[str, list[str]] | None = None
    detectors: list[str] | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("detectors")
    @classmethod
    def _known_detectors(cls, value: list[str] | None) -> list[str] | None:
        unknown = [name for name in value or () if name not in DETECTOR_ORDER]
        if unknown:
            raise ValueError(f"unknown evidence detectors: {unknown}")
        return value


class DimensionRuleSection(BaseModel):
    base: float = 50.0
    tag_weights: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ScoringSection(BaseModel):
    neutral_score: float | None = Field(default=None, ge=0.0, le=100.0)
    saturation_rate: float | None = Field(default=None, gt=0.0, lt=1.0)
    confidence_floor: float | None = Field(default=None, ge=0.0, lt=1.0)
    distinct_tag_gain: float | None = Field(default=None, ge=0.0)
    length_gain: float | None = Field(default=None, ge=0.0)
    length_saturation_words: int | None = Field(default=None, ge=1)
    short_response_words: int | None = Field(default=None, ge=0)
    short_response_penalty: float | None = Field(default=None, ge=0.0)
    length_sensitive_dimensions: list[str] | None = None
    dimension_rules: dict[str, DimensionRuleSection] | None = None

    model_config = ConfigDict(extra="forbid")


class AnalyzerSection(BaseModel):
    neutral_score: float | None = Field(default=None, ge=0.0, le=100.0)
    confidence_floor: float | None = Field(default=None, ge=0.0, lt=1.0)
    max_evidence_per_dimension: int | None = Field(default=None, ge=1)
    snippet_length: int | None = Field(default=None, ge=1)
    suggestion_threshold: float | None = Field(default=None, ge=0.0, le=100.0)
    follow_up_prompts: dict[str, str] | None = None
    evidence_priority: list[str] | None = None

    model_config = ConfigDict(extra="forbid")


class AggregatorSection(BaseModel):
    strength_threshold: float | None = None
    weakness_threshold: float | None = None
    trend_min_samples: int | None = Field(default=None, ge=2)
    trend_delta: float | None = Field(default=None, ge=0.0)
    outlier_min_samples: int | None = Field(default=None, ge=2)
    outlier_z: float | None = Field(default=None, gt=0.0)
    follow_up_prompts: dict[str, str] | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _thresholds_ordered(self) -> "AggregatorSection":
        strength = 75.0 if self.strength_threshold is None else self.strength_threshold
        weakness = 40.0 if self.weakness_threshold is None else self.weakness_threshold
        if weakness >= strength:
            raise ValueError("weakness_threshold must be below strength_threshold")
        return self


class ModelSection(BaseModel):
    endpoint: str | None = None
    api_key: str | None = None
    timeout_seconds: float = Field(default=5.0, gt=0.0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    engine: EngineSection = Field(default_factory=EngineSection)
    profiles: dict[str, ProfileSection] = Field(default_factory=dict)
    extractor: ExtractorSection | None = None
    scoring: ScoringSection | None = None
    analyzer: AnalyzerSection | None = None
    aggregator: AggregatorSection | None = None
    model: ModelSection | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("profiles")
    @classmethod
    def _known_question_types(cls, value: dict[str, ProfileSection]) -> dict[str, ProfileSection]:
        return {QuestionType.parse(key).value: section for key, section in value.items()}

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {"engine": self.engine.model_dump()}
        if self.profiles:
            settings["profiles"] = {
                key: section.model_dump() for key, section in self.profiles.items()
            }
        for name in ("extractor", "scoring", "analyzer", "aggregator"):
            section = getattr(self, name)
            if section is None:
                continue
            values = section.model_dump(exclude_none=True)
            if values:
                settings[name] = values
        if self.model is not None:
            settings["model"] = self.model.model_dump(exclude_none=True)
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
