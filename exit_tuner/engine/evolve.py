"""Genetic search over exit threshold parameter sets."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from exit_tuner.config import HISTORY_TABLE, PARAM_RANGES, SUMMARY_TABLE
from exit_tuner.engine.backtest import SamplingConfig, run_batch
from exit_tuner.engine.random_source import RandomSource, coin_flip, randint, uniform
from exit_tuner.engine.scoring import ADDITIVE, SENTINEL_FITNESS, ScoringPolicy
from exit_tuner.engine.store import ResultStore
from exit_tuner.logging_utils import get_logger
from exit_tuner.strategy.errors import ConfigurationError, EmptySampleError, MissingHistoryError
from exit_tuner.strategy.params import PRECISION, ParameterSet

logger = get_logger(__name__)

PARENT_POOL_SIZE = 4
MUTATION_SCALE = 0.1  # noise is drawn from [-scale/2, scale/2)


@dataclass(frozen=True)
class GenerationRecord:
    generation: int
    params: ParameterSet
    win_rate: float
    avg_pnl: float
    fitness: float

    def to_row(self) -> Dict[str, Any]:
        return {
            "tp1": self.params.tp1,
            "tp2": self.params.tp2,
            "stop": self.params.stop,
            "maxHoldMinutes": self.params.max_hold_minutes,
            "win_rate": self.win_rate,
            "avg_pnl": self.avg_pnl,
            "fitness": self.fitness,
        }

    def to_dict(self) -> Dict[str, Any]:
        """ParameterSet keys plus metrics, as written to the best-config artifact."""
        return {**self.params.to_dict(), "win_rate": self.win_rate, "avg_pnl": self.avg_pnl, "fitness": self.fitness}


@dataclass(frozen=True)
class EvolutionResult:
    best: Optional[GenerationRecord]
    history: Tuple[GenerationRecord, ...]
    best_fitness_by_generation: Tuple[float, ...]
    final_population: Tuple[ParameterSet, ...]

    def history_frame(self) -> pd.DataFrame:
        rows = [{"generation": rec.generation, **rec.to_row()} for rec in self.history]
        return pd.DataFrame(rows)


def random_population(pop_size: int, rng: RandomSource, base: Optional[ParameterSet] = None) -> List[ParameterSet]:
    """Sample ``pop_size`` parameter sets uniformly within PARAM_RANGES."""
    base = base or ParameterSet()
    population = []
    for _ in range(pop_size):
        tp1 = round(uniform(rng, *PARAM_RANGES["tp1"]), PRECISION)
        tp2 = round(uniform(rng, *PARAM_RANGES["tp2"]), PRECISION)
        stop = round(uniform(rng, *PARAM_RANGES["stop"]), PRECISION)
        low, high = PARAM_RANGES["max_hold_minutes"]
        max_hold = randint(rng, int(low), int(high))
        population.append(ParameterSet.clamped(tp1, tp2, stop, max_hold, base.stale_minutes))
    return population


def crossover(a: ParameterSet, b: ParameterSet, rng: RandomSource) -> Dict[str, float]:
    """Uniform crossover; returns raw field values that may still need clamping."""
    return {
        "tp1": a.tp1 if coin_flip(rng) else b.tp1,
        "tp2": a.tp2 if coin_flip(rng) else b.tp2,
        "stop": a.stop if coin_flip(rng) else b.stop,
        "max_hold_minutes": a.max_hold_minutes if coin_flip(rng) else b.max_hold_minutes,
        "stale_minutes": a.stale_minutes,
    }


def mutate(value: float, rng: RandomSource, scale: float = MUTATION_SCALE) -> float:
    return round(value + (rng.next() - 0.5) * scale, PRECISION)


def breed(ranked: Sequence[ParameterSet], rng: RandomSource, mutation_rate: float) -> ParameterSet:
    pool = ranked[: min(PARENT_POOL_SIZE, len(ranked))]
    a = pool[randint(rng, 0, len(pool))]
    b = pool[randint(rng, 0, len(pool))]
    child = crossover(a, b, rng)
    if rng.next() < mutation_rate:
        for key in ("tp1", "tp2", "stop"):
            child[key] = mutate(child[key], rng)
    return ParameterSet.clamped(**child)


def evaluate(
    params: ParameterSet,
    rng: RandomSource,
    sample_count: int,
    policy: ScoringPolicy = ADDITIVE,
    store: Optional[ResultStore] = None,
    sampling: Optional[SamplingConfig] = None,
) -> Tuple[float, float, float]:
    """Backtest ``params`` and return ``(win_rate, avg_pnl, fitness)``.

    With a store the summary row is read back from it; without one the
    batch result is used directly. A failed evaluation scores
    SENTINEL_FITNESS instead of aborting the run.
    """
    try:
        summary = run_batch(params, sample_count, rng, store=store, sampling=sampling)
        if store is not None:
            row = store.read_last(SUMMARY_TABLE)
            win_rate, avg_pnl = float(row["win_rate"]), float(row["avg_pnl"])
        else:
            win_rate, avg_pnl = summary.win_rate, summary.avg_pnl_pct
    except (EmptySampleError, MissingHistoryError) as exc:
        logger.warning("Backtest failed for %s: %s", params.to_dict(), exc)
        return 0.0, SENTINEL_FITNESS, SENTINEL_FITNESS
    return win_rate, avg_pnl, policy.score(win_rate, avg_pnl)


def step_generation(
    population: Sequence[ParameterSet],
    rng: RandomSource,
    *,
    generation: int,
    mutation_rate: float,
    sample_count: int,
    policy: ScoringPolicy = ADDITIVE,
    store: Optional[ResultStore] = None,
    sampling: Optional[SamplingConfig] = None,
) -> Tuple[List[ParameterSet], List[GenerationRecord]]:
    """Evaluate one generation and breed the next.

    Returns the next population (elite first, same size as ``population``)
    and this generation's records sorted by descending fitness.
    """
    records = []
    for params in population:
        win_rate, avg_pnl, fitness = evaluate(params, rng, sample_count, policy, store, sampling)
        records.append(GenerationRecord(generation, params, win_rate, avg_pnl, fitness))
    records.sort(key=lambda rec: rec.fitness, reverse=True)

    ranked = [rec.params for rec in records]
    next_population = [ranked[0]]
    while len(next_population) < len(population):
        next_population.append(breed(ranked, rng, mutation_rate))
    return next_population, records


def _validate_run(pop_size: int, generations: int, mutation_rate: float) -> None:
    if pop_size < 1:
        raise ConfigurationError(f"pop_size must be at least 1, got {pop_size}")
    if generations < 0:
        raise ConfigurationError(f"generations must be non-negative, got {generations}")
    if not (math.isfinite(mutation_rate) and 0.0 <= mutation_rate <= 1.0):
        raise ConfigurationError(f"mutation_rate must be within [0, 1], got {mutation_rate}")


def evolve(
    pop_size: int,
    generations: int,
    mutation_rate: float,
    sample_count: int,
    rng: RandomSource,
    policy: ScoringPolicy = ADDITIVE,
    store: Optional[ResultStore] = None,
    base_params: Optional[ParameterSet] = None,
    sampling: Optional[SamplingConfig] = None,
) -> EvolutionResult:
    """Run the genetic optimizer and return the best configuration seen.

    Args:
        pop_size: Individuals per generation.
        generations: Number of evaluate/select/breed cycles.
        mutation_rate: Probability that a child's PnL thresholds are perturbed.
        sample_count: Synthetic trades per fitness evaluation.
        rng: Random source driving sampling, selection, and mutation.
        policy: Fitness scoring policy.
        store: Optional result sink; receives trade, summary and history rows.
        base_params: Supplies values that are not searched (stale_minutes).
        sampling: Trade distribution overrides for the backtester.

    Returns:
        EvolutionResult with the global best record, the full history in
        evaluation order, the running best fitness per generation, and the
        last bred population.
    """
    _validate_run(pop_size, generations, mutation_rate)
    population = random_population(pop_size, rng, base_params)
    history: List[GenerationRecord] = []
    best_by_generation: List[float] = []
    best: Optional[GenerationRecord] = None

    for gen in range(1, generations + 1):
        population, records = step_generation(
            population,
            rng,
            generation=gen,
            mutation_rate=mutation_rate,
            sample_count=sample_count,
            policy=policy,
            store=store,
            sampling=sampling,
        )
        history.extend(records)
        if store is not None:
            for rec in records:
                store.append(HISTORY_TABLE, rec.to_row())

        top = records[0]
        if best is None or top.fitness > best.fitness:
            best = top
        best_by_generation.append(best.fitness)
        logger.info(
            "Generation %d/%d best: tp1=%s tp2=%s stop=%s hold=%s | score=%.2f (overall %.2f)",
            gen,
            generations,
            top.params.tp1,
            top.params.tp2,
            top.params.stop,
            top.params.max_hold_minutes,
            top.fitness,
            best.fitness,
        )

    return EvolutionResult(
        best=best,
        history=tuple(history),
        best_fitness_by_generation=tuple(best_by_generation),
        final_population=tuple(population),
    )
