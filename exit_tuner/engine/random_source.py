"""Injectable random sources for reproducible simulations."""

from __future__ import annotations

import math
from typing import Optional, Protocol

import numpy as np


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a float in [0, 1)."""
        ...


class SeededRandom:
    """RandomSource backed by a numpy Generator; same seed, same stream."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next(self) -> float:
        return float(self._rng.random())


def uniform(rng: RandomSource, low: float, high: float) -> float:
    return low + rng.next() * (high - low)


def randint(rng: RandomSource, low: int, high: int) -> int:
    """Integer in [low, high)."""
    return low + int(math.floor(rng.next() * (high - low)))


def coin_flip(rng: RandomSource) -> bool:
    return rng.next() < 0.5
