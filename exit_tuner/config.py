"""Global configuration for the exit tuner."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from exit_tuner.strategy.params import ParameterSet

ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = ROOT / "data"
LOG_FILE = ROOT / "logs" / "exit_tuner.log"

TRADES_TABLE = "backtest_results"
SUMMARY_TABLE = "backtest_summary"
HISTORY_TABLE = "evolve_history"

BEST_GENETIC_FILE = "best_config_genetic.json"
BEST_SUMMARY_FILE = "best_config.json"

# Sampling ranges for the initial population: (low, high)
PARAM_RANGES: Dict[str, Tuple[float, float]] = {
    "tp1": (0.1, 0.5),
    "tp2": (0.3, 0.8),
    "stop": (-0.3, -0.1),
    "max_hold_minutes": (10, 30),
}

ENV_KEYS: Dict[str, str] = {
    "tp1": "STRAT_TP1",
    "tp2": "STRAT_TP2",
    "stop": "STRAT_STOP",
    "max_hold_minutes": "STRAT_MAX_HOLD",
    "stale_minutes": "STRAT_STALE_MIN",
}


@dataclass
class EvolveConfig:
    """Run settings for the genetic optimizer."""

    pop_size: int = 8
    generations: int = 10
    mutation_rate: float = 0.3
    sample_count: int = 12  # synthetic trades per fitness evaluation
    seed: Optional[int] = None
    scoring: str = "additive"


def _env_number(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if math.isfinite(value) else default


def env_defaults(environ: Optional[Mapping[str, str]] = None) -> Dict[str, float]:
    """Raw STRAT_* numbers keyed by ParameterSet field, falling back to defaults per key.

    Values are not cross-checked here, so a CLI can still override them
    before a ParameterSet is built.
    """
    env = os.environ if environ is None else environ
    defaults = ParameterSet()
    return {name: _env_number(env, key, getattr(defaults, name)) for name, key in ENV_KEYS.items()}


def params_from_env(environ: Optional[Mapping[str, str]] = None) -> ParameterSet:
    """Read strategy thresholds from STRAT_* variables, falling back to defaults per key."""
    return ParameterSet(**env_defaults(environ))
