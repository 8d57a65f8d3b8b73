"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import load_config


class ConfigManager:
    """Simple YAML-backed configuration loader."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        return load_settings(self._base_path / f"{name}.yaml")


def load_settings(path: str | Path) -> dict[str, Any]:
    """Read a YAML file, validate it and return container settings.

    An empty file yields the default settings.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return load_config(raw if raw is not None else {}).to_settings()


__all__ = ["ConfigManager", "load_settings"]
