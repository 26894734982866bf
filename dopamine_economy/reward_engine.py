"""Reward engine — turns a save's edit stats and typing metrics into coins.

Pure calculation: no I/O and no wallet access. The only side effect is one
draw from the random source for the jackpot roll.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .edit_classifier import EditStats, Magnitude, classify_magnitude

if TYPE_CHECKING:
    from .config import DopamineConfig
    from .typing_metrics import PerformanceSnapshot


# ═══════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════

BASE_COINS = 1

MAGNITUDE_MULTIPLIERS: dict[Magnitude, int] = {
    Magnitude.SMALL: 1,
    Magnitude.MEDIUM: 2,
    Magnitude.LARGE: 5,
    Magnitude.EPIC: 10,
}

FLOW_DURATION_THRESHOLD_MIN = 15

WPM_THRESHOLD_HIGH = 80
WPM_THRESHOLD_LOW = 40
SPEED_BONUS_HIGH = 5
SPEED_BONUS_LOW = 2

QUALITY_MULTIPLIER_FIX = 2.0
QUALITY_MULTIPLIER_CLEAN = 1.5
QUALITY_MULTIPLIER_BUGGY = 0.5

JACKPOT_MULTIPLIER = 10
JACKPOT_LABEL = "JACKPOT"


# ═══════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RewardDecision:
    """Outcome of one save.

    ``gated`` is True when the save was too small to be considered at all,
    as opposed to a computed payout that happened to be zero.
    """

    coins: int
    magnitude: Magnitude
    bonuses: list[str] = field(default_factory=list)
    jackpot: bool = False
    gated: bool = False


# ═══════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════


class RewardEngine:
    """Evaluates the payout formula for a save."""

    def __init__(
        self,
        config: DopamineConfig,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger("dopamine.rewards")

    def update_config(self, new_config: DopamineConfig) -> None:
        """Hot-swap the config reference."""
        self._config = new_config

    def decide(self, stats: EditStats, perf: PerformanceSnapshot) -> RewardDecision:
        """Compute coins, bonus labels and jackpot for a save.

        Final payout is ``floor((base + flow + speed) × magnitude × quality)``
        plus ``10 × magnitude`` on a jackpot.
        """
        thresholds = self._config.thresholds
        magnitude = classify_magnitude(stats, thresholds)

        if stats.chars_added < thresholds.min_chars:
            return RewardDecision(coins=0, magnitude=magnitude, gated=True)

        magnitude_multiplier = MAGNITUDE_MULTIPLIERS[magnitude]
        base_coins = BASE_COINS
        bonuses: list[str] = []

        # Flow state
        if perf.focus_minutes > FLOW_DURATION_THRESHOLD_MIN:
            flow_bonus = perf.focus_minutes // FLOW_DURATION_THRESHOLD_MIN
            if flow_bonus > 0:
                base_coins += flow_bonus
                bonuses.append(f"Flow×{flow_bonus}")

        # Speed
        if perf.wpm > WPM_THRESHOLD_HIGH:
            base_coins += SPEED_BONUS_HIGH
            bonuses.append("Speed Demon")
        elif perf.wpm > WPM_THRESHOLD_LOW:
            base_coins += SPEED_BONUS_LOW
            bonuses.append("Fast Typer")

        # Code quality
        quality_multiplier = 1.0
        if perf.error_delta > 0:
            quality_multiplier = QUALITY_MULTIPLIER_FIX
            bonuses.append("Bug Fixer")
        elif perf.is_clean:
            quality_multiplier = QUALITY_MULTIPLIER_CLEAN
            bonuses.append("Clean Code")
        elif perf.error_delta < 0:
            quality_multiplier = QUALITY_MULTIPLIER_BUGGY
            bonuses.append("Buggy")

        # Truncate once, after every multiplier is applied
        coins = math.floor(base_coins * magnitude_multiplier * quality_multiplier)

        # A turn that introduced errors never hits the jackpot
        roll = self._rng.random()
        jackpot = roll < self._config.win_odds and perf.error_delta >= 0
        if jackpot:
            coins += JACKPOT_MULTIPLIER * magnitude_multiplier
            bonuses.append(JACKPOT_LABEL)

        self._logger.debug(
            "Reward: %s base=%d x%d x%.1f roll=%.3f -> %d coins%s",
            magnitude.value, base_coins, magnitude_multiplier, quality_multiplier,
            roll, coins, " (jackpot)" if jackpot else "",
        )
        return RewardDecision(
            coins=coins,
            magnitude=magnitude,
            bonuses=bonuses,
            jackpot=jackpot,
        )
