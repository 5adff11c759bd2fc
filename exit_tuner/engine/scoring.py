"""Fitness scoring policies for ranking parameter sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from exit_tuner.strategy.errors import ConfigurationError

SENTINEL_FITNESS = -999.0


@dataclass(frozen=True)
class ScoringPolicy:
    """Linear blend of win rate (percent) and average PnL (percent)."""

    name: str
    win_weight: float
    pnl_weight: float

    def score(self, win_rate: float, avg_pnl: float) -> float:
        return win_rate * self.win_weight + avg_pnl * self.pnl_weight


ADDITIVE = ScoringPolicy("additive", win_weight=1.0, pnl_weight=0.5)
WEIGHTED = ScoringPolicy("weighted", win_weight=0.3, pnl_weight=0.7)

SCORING_POLICIES: Dict[str, ScoringPolicy] = {p.name: p for p in (ADDITIVE, WEIGHTED)}


def get_scoring_policy(name: str) -> ScoringPolicy:
    try:
        return SCORING_POLICIES[name]
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown scoring policy {name!r}; choose from {sorted(SCORING_POLICIES)}"
        ) from exc
