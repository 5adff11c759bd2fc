"""Rule set deciding when to exit an open position."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from exit_tuner.strategy.params import ParameterSet

YOUNG_AGE_MINUTES = 5.0
OLD_AGE_MINUTES = 20.0

# (tp multiplier, stop multiplier)
YOUNG_SCALING = (1.3, 1.5)
OLD_SCALING = (0.9, 0.8)


class Action(str, Enum):
    SELL_ALL = "SELL_ALL"
    SELL_HALF = "SELL_HALF"
    STOP = "STOP"
    TIMEOUT = "TIMEOUT"
    HOLD = "HOLD"


CLOSING_ACTIONS = frozenset({Action.SELL_ALL, Action.STOP, Action.TIMEOUT})


@dataclass(frozen=True)
class ExitDecision:
    action: Action
    reason: str

    @property
    def closes_position(self) -> bool:
        return self.action in CLOSING_ACTIONS


class Thresholds(NamedTuple):
    tp1: float
    tp2: float
    stop: float


def adjusted_thresholds(params: ParameterSet, age_minutes: float) -> Thresholds:
    """Scale take-profit and stop thresholds by position age.

    Young positions (< 5 min) get wider bands; old ones (> 20 min) are
    squeezed toward an exit. Both bounds are exclusive.
    """
    if age_minutes < YOUNG_AGE_MINUTES:
        tp_mult, stop_mult = YOUNG_SCALING
    elif age_minutes > OLD_AGE_MINUTES:
        tp_mult, stop_mult = OLD_SCALING
    else:
        return Thresholds(params.tp1, params.tp2, params.stop)
    return Thresholds(params.tp1 * tp_mult, params.tp2 * tp_mult, params.stop * stop_mult)


def decide_exit(
    pnl_ratio: float,
    age_minutes: float,
    last_move_minutes: float,
    params: ParameterSet,
) -> ExitDecision:
    """Return the exit action for a position snapshot.

    Checks run in a fixed order and the first match wins: tp2, tp1, stop,
    staleness, max age. Only the PnL thresholds are age-adjusted. A
    non-finite PnL yields HOLD; NaN ages never trigger a timeout.
    """
    if not math.isfinite(pnl_ratio):
        return ExitDecision(Action.HOLD, "no_signal")

    adj = adjusted_thresholds(params, age_minutes)

    if pnl_ratio >= adj.tp2:
        return ExitDecision(Action.SELL_ALL, "tp2")
    if pnl_ratio >= adj.tp1:
        return ExitDecision(Action.SELL_HALF, "tp1")
    if pnl_ratio <= adj.stop:
        return ExitDecision(Action.STOP, "stop_loss")
    if last_move_minutes >= params.stale_minutes:
        return ExitDecision(Action.TIMEOUT, "stale_position")
    if age_minutes >= params.max_hold_minutes:
        return ExitDecision(Action.TIMEOUT, "max_age")

    return ExitDecision(Action.HOLD, "no_signal")
