import math

import pytest

from exit_tuner.strategy.params import ParameterSet
from exit_tuner.strategy.rules import Action, ExitDecision, adjusted_thresholds, decide_exit

AGES = [0.0, 3.0, 4.99, 5.0, 10.0, 20.0, 20.01, 45.0, 500.0]


def test_concrete_scenarios(params):
    assert decide_exit(0.55, 10, 0, params) == ExitDecision(Action.SELL_ALL, "tp2")
    assert decide_exit(0.30, 10, 0, params) == ExitDecision(Action.SELL_HALF, "tp1")
    assert decide_exit(-0.25, 10, 0, params) == ExitDecision(Action.STOP, "stop_loss")
    assert decide_exit(0.0, 16, 2, params) == ExitDecision(Action.TIMEOUT, "max_age")
    assert decide_exit(0.0, 3, 0, params) == ExitDecision(Action.HOLD, "no_signal")


def test_young_positions_get_wider_thresholds(params):
    adj = adjusted_thresholds(params, 3)
    assert adj.tp1 == pytest.approx(0.325)
    assert adj.tp2 == pytest.approx(0.65)
    assert adj.stop == pytest.approx(-0.30)
    # Would be a tp1 / stop exit at a middle age.
    assert decide_exit(0.30, 3, 0, params).action is Action.HOLD
    assert decide_exit(-0.25, 3, 0, params).action is Action.HOLD


def test_old_positions_are_squeezed():
    p = ParameterSet(max_hold_minutes=120)
    adj = adjusted_thresholds(p, 30)
    assert adj.tp1 == pytest.approx(0.225)
    assert adj.tp2 == pytest.approx(0.45)
    assert adj.stop == pytest.approx(-0.16)
    assert decide_exit(0.23, 30, 0, p).action is Action.SELL_HALF
    assert decide_exit(-0.17, 30, 0, p).action is Action.STOP


def test_age_boundaries_use_unadjusted_thresholds():
    p = ParameterSet(max_hold_minutes=120)
    for age in (5.0, 20.0):
        assert adjusted_thresholds(p, age) == (p.tp1, p.tp2, p.stop)

    assert decide_exit(0.25, 5.0, 0, p).action is Action.SELL_HALF
    assert decide_exit(0.25, 4.99, 0, p).action is Action.HOLD
    assert decide_exit(0.23, 20.0, 0, p).action is Action.HOLD
    assert decide_exit(0.23, 20.01, 0, p).action is Action.SELL_HALF


@pytest.mark.parametrize("age", AGES)
@pytest.mark.parametrize("last_move", [0.0, 5.0, 1000.0])
def test_profit_checks_take_precedence(params, age, last_move):
    adj = adjusted_thresholds(params, age)
    for pnl in (adj.tp2, adj.tp2 + 0.01, adj.tp2 + 3.0):
        assert decide_exit(pnl, age, last_move, params) == ExitDecision(Action.SELL_ALL, "tp2")

    span = adj.tp2 - adj.tp1
    for frac in (0.0, 0.5, 0.99):
        pnl = adj.tp1 + span * frac
        assert decide_exit(pnl, age, last_move, params) == ExitDecision(Action.SELL_HALF, "tp1")


@pytest.mark.parametrize("age", AGES)
def test_stop_precedes_timeouts(params, age):
    adj = adjusted_thresholds(params, age)
    for pnl in (adj.stop, adj.stop - 0.01, -5.0):
        assert decide_exit(pnl, age, 1000.0, params) == ExitDecision(Action.STOP, "stop_loss")


def test_stale_precedes_max_age(params):
    assert decide_exit(0.0, 100, 5, params) == ExitDecision(Action.TIMEOUT, "stale_position")
    assert decide_exit(0.0, 100, 4.9, params) == ExitDecision(Action.TIMEOUT, "max_age")


def test_timeouts_use_unadjusted_minutes():
    p = ParameterSet(max_hold_minutes=3, stale_minutes=2)
    assert decide_exit(0.0, 3, 0, p).reason == "max_age"
    assert decide_exit(0.0, 2.9, 0, p).reason == "no_signal"
    assert decide_exit(0.0, 1, 2, p).reason == "stale_position"


@pytest.mark.parametrize("pnl", [math.nan, math.inf, -math.inf])
def test_non_finite_pnl_holds(params, pnl):
    assert decide_exit(pnl, 100, 100, params) == ExitDecision(Action.HOLD, "no_signal")


def test_non_finite_ages_never_raise(params):
    assert decide_exit(0.30, math.nan, math.nan, params).action is Action.SELL_HALF
    assert decide_exit(0.0, math.nan, math.nan, params).action is Action.HOLD
    assert decide_exit(0.0, math.inf, 0, params).reason == "max_age"
    assert decide_exit(0.0, 10, math.inf, params).reason == "stale_position"


def test_closing_actions():
    assert ExitDecision(Action.SELL_ALL, "tp2").closes_position
    assert ExitDecision(Action.STOP, "stop_loss").closes_position
    assert ExitDecision(Action.TIMEOUT, "max_age").closes_position
    assert not ExitDecision(Action.SELL_HALF, "tp1").closes_position
    assert not ExitDecision(Action.HOLD, "no_signal").closes_position
