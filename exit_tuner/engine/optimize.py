"""Rank accumulated backtest summaries and persist best configurations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import pandas as pd

from exit_tuner.config import SUMMARY_TABLE
from exit_tuner.engine.scoring import WEIGHTED, ScoringPolicy
from exit_tuner.engine.store import ResultStore
from exit_tuner.strategy.errors import MissingHistoryError
from exit_tuner.strategy.params import ParameterSet

METRIC_KEYS = ("win_rate", "avg_pnl", "fitness")


def rank_summary(store: ResultStore, policy: ScoringPolicy = WEIGHTED) -> pd.DataFrame:
    """Return the summary table with a ``fitness`` column, best first."""
    summary = store.read_table(SUMMARY_TABLE)
    if summary.empty:
        raise MissingHistoryError(f"no rows in {SUMMARY_TABLE!r}; run a backtest first")

    scored = summary.copy()
    scored["win_rate"] = pd.to_numeric(scored["win_rate"], errors="coerce")
    scored["avg_pnl"] = pd.to_numeric(scored["avg_pnl"], errors="coerce")
    scored = scored.dropna(subset=["win_rate", "avg_pnl"])
    if scored.empty:
        raise MissingHistoryError(f"no parseable rows in {SUMMARY_TABLE!r}")

    scored["fitness"] = policy.score(scored["win_rate"], scored["avg_pnl"])
    scored.sort_values(by="fitness", ascending=False, kind="mergesort", inplace=True)
    return scored.reset_index(drop=True)


def best_from_summary(store: ResultStore, policy: ScoringPolicy = WEIGHTED) -> Dict[str, Any]:
    best = rank_summary(store, policy).iloc[0].to_dict()
    return {key: value.item() if hasattr(value, "item") else value for key, value in best.items()}


def save_best_config(path: Path, record: Mapping[str, Any]) -> Path:
    """Write a ParameterSet plus its metrics as pretty JSON."""
    params = ParameterSet.from_dict(record)
    payload = {**params.to_dict(), **{key: float(record[key]) for key in METRIC_KEYS}}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def load_best_config(path: Path) -> Tuple[ParameterSet, Dict[str, float]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    metrics = {key: float(data[key]) for key in METRIC_KEYS if key in data}
    return ParameterSet.from_dict(data), metrics
