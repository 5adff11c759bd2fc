from itertools import cycle

import pytest

from exit_tuner.strategy.params import ParameterSet


class SequenceRandom:
    """RandomSource replaying a fixed cycle of draws."""

    def __init__(self, values):
        self._values = cycle(values)

    def next(self) -> float:
        return next(self._values)


@pytest.fixture
def params() -> ParameterSet:
    return ParameterSet(tp1=0.25, tp2=0.50, stop=-0.20, max_hold_minutes=15, stale_minutes=5)


@pytest.fixture
def sequence_rng():
    return SequenceRandom
