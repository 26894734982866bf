"""Configuration system for dopamine-economy.

All settings are Pydantic models with defaults matching the editor
extension's shipped settings, so an empty YAML file is a valid config.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════
#  Storage
# ═══════════════════════════════════════════════════════════════

class StorageConfig(BaseModel):
    directory: str = "~/.dopamine-economy"
    state_db: str = "state.db"
    fallback_directory: str = Field(
        default="",
        description="Where the state store goes when 'directory' is unusable. Empty means the system temp dir.",
    )

    @property
    def path(self) -> Path:
        return Path(os.path.expanduser(self.directory))

    @property
    def state_db_path(self) -> Path:
        return self.path / self.state_db

    @property
    def fallback_state_db_path(self) -> Path:
        if self.fallback_directory:
            base = Path(os.path.expanduser(self.fallback_directory))
        else:
            base = Path(tempfile.gettempdir()) / "dopamine-economy"
        return base / Path(self.state_db).name


# ═══════════════════════════════════════════════════════════════
#  Edit magnitude
# ═══════════════════════════════════════════════════════════════

class ThresholdPair(BaseModel):
    lines: int
    chars: int


class ThresholdsConfig(BaseModel):
    """Magnitude tier boundaries. Small is whatever falls below medium."""
    min_chars: int = Field(default=20, description="Non-whitespace chars needed before a save pays out")
    medium: ThresholdPair = Field(default_factory=lambda: ThresholdPair(lines=5, chars=100))
    large: ThresholdPair = Field(default_factory=lambda: ThresholdPair(lines=20, chars=500))
    epic: ThresholdPair = Field(default_factory=lambda: ThresholdPair(lines=50, chars=2000))


# ═══════════════════════════════════════════════════════════════
#  Rewards & presentation hints
# ═══════════════════════════════════════════════════════════════

class RewardItemConfig(BaseModel):
    """A jackpot bonus reward. Rendering is up to the presentation layer."""
    type: str = Field(default="message", description="'url', 'message', 'image' or 'quote'")
    content: str = ""
    label: str = ""
    weight: float | None = None


class SoundsConfig(BaseModel):
    enabled: bool = False
    win: str = ""
    coin: str = ""


# ═══════════════════════════════════════════════════════════════
#  Top-Level Config
# ═══════════════════════════════════════════════════════════════

class DopamineConfig(BaseModel):
    """Full dopamine-economy config."""

    storage: StorageConfig = Field(default_factory=StorageConfig)

    # One threshold drives both typed/bulk classification and WPM eligibility
    bulk_threshold: int = 50
    win_odds: float = 0.1
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)

    ignore_extensions: list[str] = Field(default_factory=lambda: [".json"])
    rewards: list[RewardItemConfig] = Field(default_factory=list)
    sounds: SoundsConfig = Field(default_factory=SoundsConfig)

    respin_cost: int = 1


# ═══════════════════════════════════════════════════════════════
#  Config Loading
# ═══════════════════════════════════════════════════════════════

def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(obj, str):
        return re.sub(
            r"\$\{([^}:]+)(?::-(.*?))?\}",
            lambda m: os.environ.get(m.group(1), m.group(2) or ""),
            obj,
        )
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def load_config(config_path: str) -> DopamineConfig:
    """Load and validate YAML config file into DopamineConfig."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    # An empty file means "all defaults"
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a YAML mapping at the top level.")

    raw = _expand_env_vars(raw)
    return DopamineConfig(**raw)
