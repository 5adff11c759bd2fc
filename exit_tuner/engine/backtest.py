"""Synthetic trade backtester scoring one parameter set."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from exit_tuner.config import SUMMARY_TABLE, TRADES_TABLE
from exit_tuner.engine.random_source import RandomSource, uniform
from exit_tuner.engine.store import ResultStore
from exit_tuner.logging_utils import get_logger
from exit_tuner.strategy.errors import ConfigurationError, EmptySampleError
from exit_tuner.strategy.params import ParameterSet
from exit_tuner.strategy.rules import decide_exit

logger = get_logger(__name__)


@dataclass(frozen=True)
class SamplingConfig:
    """Distribution of synthetic trades.

    Entry and exit prices are drawn independently from
    ``[price_floor, price_floor + price_span)``. Age and inactivity are fixed
    unless a ``(low, high)`` range is given, in which case they are drawn per
    trade.
    """

    price_floor: float = 0.0001
    price_span: float = 0.001
    age_minutes: float = 10.0
    last_move_minutes: float = 5.0
    age_range: Optional[Tuple[float, float]] = None
    last_move_range: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        # entry prices divide the PnL, so the floor must stay above zero
        if not math.isfinite(self.price_floor) or self.price_floor <= 0:
            raise ConfigurationError(f"price_floor must be positive, got {self.price_floor}")
        if not math.isfinite(self.price_span) or self.price_span < 0:
            raise ConfigurationError(f"price_span must be non-negative, got {self.price_span}")
        for name in ("age_minutes", "last_move_minutes"):
            value = getattr(self, name)
            if math.isnan(value) or value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")
        for name in ("age_range", "last_move_range"):
            bounds = getattr(self, name)
            if bounds is None:
                continue
            low, high = bounds
            if not (math.isfinite(low) and math.isfinite(high)) or low < 0 or low > high:
                raise ConfigurationError(f"{name} must be an ordered non-negative (low, high) pair, got {bounds}")


@dataclass(frozen=True)
class TradeSample:
    id: str
    entry_price: float
    exit_price: float
    pnl_pct: float
    decision: str

    def to_row(self) -> dict:
        return {
            "mint_or_id": self.id,
            "entry_price": round(self.entry_price, 6),
            "exit_price": round(self.exit_price, 6),
            "pnl_pct": round(self.pnl_pct, 4),
            "decision": self.decision,
        }


@dataclass(frozen=True)
class BatchSummary:
    win_rate: float  # percent of trades with pnl_pct > 0
    avg_pnl_pct: float
    samples: Tuple[TradeSample, ...] = ()


def summary_row(params: ParameterSet, summary: BatchSummary) -> dict:
    return {
        "tp1": params.tp1,
        "tp2": params.tp2,
        "stop": params.stop,
        "maxHoldMinutes": params.max_hold_minutes,
        "win_rate": round(summary.win_rate, 2),
        "avg_pnl": round(summary.avg_pnl_pct, 2),
    }


def _draw(rng: RandomSource, fixed: float, bounds: Optional[Tuple[float, float]]) -> float:
    if bounds is None:
        return fixed
    return uniform(rng, bounds[0], bounds[1])


def run_batch(
    params: ParameterSet,
    sample_count: int,
    rng: RandomSource,
    store: Optional[ResultStore] = None,
    sampling: Optional[SamplingConfig] = None,
) -> BatchSummary:
    """Simulate ``sample_count`` trades under ``params`` and aggregate them.

    Args:
        params: Exit thresholds used to classify each trade.
        sample_count: Number of synthetic trades; must be positive.
        rng: Random source for prices (and ages when sampled).
        store: Optional sink; receives one trade row per sample and one
            summary row for the batch.
        sampling: Trade distribution overrides (optional).

    Returns:
        BatchSummary with win rate, average PnL percent, and the samples.

    Raises:
        EmptySampleError: if ``sample_count`` is not positive.
    """
    if sample_count <= 0:
        raise EmptySampleError(f"backtest batch needs at least one sample, got {sample_count}")

    cfg = sampling or SamplingConfig()
    samples: List[TradeSample] = []
    for i in range(sample_count):
        entry_price = cfg.price_floor + rng.next() * cfg.price_span
        exit_price = cfg.price_floor + rng.next() * cfg.price_span
        age = _draw(rng, cfg.age_minutes, cfg.age_range)
        last_move = _draw(rng, cfg.last_move_minutes, cfg.last_move_range)

        pnl_pct = (exit_price - entry_price) / entry_price * 100
        decision = decide_exit(pnl_pct / 100, age, last_move, params)
        samples.append(
            TradeSample(
                id=f"sample_{i}",
                entry_price=entry_price,
                exit_price=exit_price,
                pnl_pct=pnl_pct,
                decision=decision.action.value,
            )
        )

    pnl = np.array([s.pnl_pct for s in samples], dtype=float)
    summary = BatchSummary(
        win_rate=float(100.0 * np.count_nonzero(pnl > 0) / len(pnl)),
        avg_pnl_pct=float(pnl.mean()),
        samples=tuple(samples),
    )
    logger.debug(
        "Backtest %s -> %d trades, avg PnL %.2f%%, win rate %.1f%%",
        params.to_dict(),
        len(samples),
        summary.avg_pnl_pct,
        summary.win_rate,
    )

    if store is not None:
        for sample in samples:
            store.append(TRADES_TABLE, sample.to_row())
        store.append(SUMMARY_TABLE, summary_row(params, summary))
    return summary
