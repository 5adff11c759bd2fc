"""Backtest simulator and genetic optimizer for exit thresholds."""

from exit_tuner.engine.backtest import BatchSummary, SamplingConfig, TradeSample, run_batch
from exit_tuner.engine.evolve import EvolutionResult, GenerationRecord, evolve, step_generation
from exit_tuner.engine.random_source import RandomSource, SeededRandom
from exit_tuner.engine.scoring import ADDITIVE, SENTINEL_FITNESS, WEIGHTED, ScoringPolicy, get_scoring_policy
from exit_tuner.engine.store import CsvResultStore, InMemoryResultStore, ResultStore

__all__ = [
    "ADDITIVE",
    "BatchSummary",
    "CsvResultStore",
    "EvolutionResult",
    "GenerationRecord",
    "InMemoryResultStore",
    "RandomSource",
    "ResultStore",
    "SENTINEL_FITNESS",
    "SamplingConfig",
    "ScoringPolicy",
    "SeededRandom",
    "TradeSample",
    "WEIGHTED",
    "evolve",
    "get_scoring_policy",
    "run_batch",
    "step_generation",
]
