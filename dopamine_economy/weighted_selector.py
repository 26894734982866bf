"""Weighted random pick of a jackpot bonus reward."""

from __future__ import annotations

import logging
import random
from typing import Protocol, Sequence, TypeVar

DEFAULT_WEIGHT = 1.0


class Weighted(Protocol):
    weight: float | None


T = TypeVar("T", bound=Weighted)


def item_weight(item: Weighted) -> float:
    """Item weight, defaulting to 1 when unset."""
    weight = getattr(item, "weight", None)
    return DEFAULT_WEIGHT if weight is None else weight


class WeightedSelector:
    """Picks one item with probability proportional to its weight."""

    def __init__(
        self,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger("dopamine.selector")

    def pick(self, items: Sequence[T]) -> T | None:
        """Return a weighted-random item, or None if nothing is eligible.

        Items with weight <= 0 never win.
        """
        eligible = [item for item in items if item_weight(item) > 0]
        if not eligible:
            return None

        total = sum(item_weight(item) for item in eligible)
        remainder = self._rng.random() * total
        for item in eligible:
            remainder -= item_weight(item)
            if remainder <= 0:
                return item

        # Float accumulation can leave a sliver above zero
        self._logger.debug("Weighted pick fell through (remainder %.3g)", remainder)
        return eligible[-1]
