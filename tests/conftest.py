"""Shared test fixtures for dopamine-economy."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dopamine_economy.config import DopamineConfig
from dopamine_economy.database import StateStore
from dopamine_economy.ledger import Ledger
from dopamine_economy.main import DopamineApp
from dopamine_economy.wallet import Wallet


# ── Deterministic collaborators ─────────────────────────────

class FakeClock:
    """Manually advanced clock.

    Calling it returns an aware local datetime; ``seconds`` is the same
    instant as a ``time.time()`` float.
    """

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def seconds(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubRandom:
    """Returns queued values from ``random()``; the last one repeats."""

    def __init__(self, *values: float) -> None:
        self._values = list(values) or [0.5]

    def random(self) -> float:
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0]


def local(*args: int) -> datetime:
    """Aware datetime for a wall-clock time in the local zone."""
    return datetime(*args).astimezone()


# ── Minimal config dict matching DopamineConfig schema ──────

def make_config_dict(storage_dir: Path, **overrides) -> dict:
    """Build a valid config dict with sensible test defaults."""
    base = {
        "storage": {
            "directory": str(storage_dir),
            "state_db": "state.db",
            "fallback_directory": str(storage_dir.parent / "fallback"),
        },
        "bulk_threshold": 50,
        "win_odds": 0.1,
        "thresholds": {
            "min_chars": 20,
            "medium": {"lines": 5, "chars": 100},
            "large": {"lines": 20, "chars": 500},
            "epic": {"lines": 50, "chars": 2000},
        },
        "ignore_extensions": [".json"],
        "rewards": [
            {"type": "message", "content": "Stretch!", "label": "Stretch", "weight": 1},
            {"type": "quote", "content": "programming", "label": "Quote", "weight": 3},
        ],
        "sounds": {"enabled": True, "win": "", "coin": ""},
    }
    base.update(overrides)
    return base


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def sample_config_dict(storage_dir: Path) -> dict:
    """Return a config dict suitable for tests."""
    return make_config_dict(storage_dir)


@pytest.fixture
def sample_config(sample_config_dict: dict) -> DopamineConfig:
    """Return a parsed DopamineConfig."""
    return DopamineConfig(**sample_config_dict)


@pytest.fixture
def clock() -> FakeClock:
    """Mid-month, mid-day, so neither day nor month edges are near."""
    return FakeClock(local(2025, 1, 15, 12, 0, 0))


# ── Storage fixtures ────────────────────────────────────────

@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    """Provide an initialized state store with temp file."""
    s = StateStore(tmp_path / "state.db", logging.getLogger("test"))
    s.initialize()
    return s


@pytest.fixture
def ledger(storage_dir: Path, clock: FakeClock) -> Ledger:
    return Ledger(storage_dir, logging.getLogger("test"), clock=clock)


@pytest.fixture
def wallet(store: StateStore, ledger: Ledger, clock: FakeClock) -> Wallet:
    return Wallet(store, ledger, logging.getLogger("test"), clock=clock)


# ── Application fixtures ────────────────────────────────────

@pytest.fixture
def diagnostics() -> MagicMock:
    """Diagnostics provider reporting a clean document."""
    provider = MagicMock()
    provider.error_count = MagicMock(return_value=0)
    return provider


@pytest.fixture
def result_sink() -> MagicMock:
    return MagicMock()


@pytest.fixture
def app(
    sample_config: DopamineConfig, diagnostics: MagicMock, result_sink: MagicMock, clock: FakeClock,
) -> DopamineApp:
    """DopamineApp whose jackpot roll never hits."""
    return DopamineApp(
        sample_config,
        diagnostics=diagnostics,
        rng=StubRandom(0.99),
        result_sink=result_sink,
        logger=logging.getLogger("test"),
        clock=clock,
    )
