"""CLI to evolve exit thresholds with a genetic search."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from exit_tuner.config import BEST_GENETIC_FILE, DATA_DIR, HISTORY_TABLE, LOG_FILE, EvolveConfig, params_from_env
from exit_tuner.engine import CsvResultStore, SeededRandom, evolve, get_scoring_policy
from exit_tuner.engine.optimize import save_best_config
from exit_tuner.engine.scoring import SCORING_POLICIES
from exit_tuner.logging_utils import init_logging
from exit_tuner.strategy import ConfigurationError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    defaults = EvolveConfig()
    parser = argparse.ArgumentParser(description="Run a genetic search over exit thresholds.")
    parser.add_argument("--pop-size", type=int, default=defaults.pop_size, help="Individuals per generation.")
    parser.add_argument("--generations", type=int, default=defaults.generations, help="Number of generations.")
    parser.add_argument("--mutation-rate", type=float, default=defaults.mutation_rate, help="Mutation probability.")
    parser.add_argument("--samples", type=int, default=defaults.sample_count, help="Trades per fitness evaluation.")
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Random seed for reproducible runs.")
    parser.add_argument(
        "--scoring",
        choices=sorted(SCORING_POLICIES),
        default=defaults.scoring,
        help="Fitness policy: additive (win + pnl/2) or weighted (0.3 win + 0.7 pnl).",
    )
    parser.add_argument("--output-dir", default=str(DATA_DIR), help="Directory for CSV tables and best config.")
    return parser.parse_args(argv)


def run(cfg: EvolveConfig, output_dir: Path):
    store = CsvResultStore(output_dir)
    result = evolve(
        pop_size=cfg.pop_size,
        generations=cfg.generations,
        mutation_rate=cfg.mutation_rate,
        sample_count=cfg.sample_count,
        rng=SeededRandom(cfg.seed),
        policy=get_scoring_policy(cfg.scoring),
        store=store,
        base_params=params_from_env(),
    )
    if result.best is None:
        print("No generations evaluated.")
        return result

    best_path = save_best_config(output_dir / BEST_GENETIC_FILE, result.best.to_dict())
    print(f"Evaluated {len(result.history)} individuals over {cfg.generations} generations.")
    print("Top 5 overall:")
    print(result.history_frame().sort_values("fitness", ascending=False).head().to_string(index=False))
    print(f"Evolution history saved to {store.path_for(HISTORY_TABLE)}")
    print(f"Final evolved config saved to {best_path}")
    return result


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    init_logging(log_file=LOG_FILE)
    cfg = EvolveConfig(
        pop_size=args.pop_size,
        generations=args.generations,
        mutation_rate=args.mutation_rate,
        sample_count=args.samples,
        seed=args.seed,
        scoring=args.scoring,
    )
    try:
        return run(cfg, Path(args.output_dir))
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid evolution settings: {exc}") from exc


if __name__ == "__main__":
    main()
