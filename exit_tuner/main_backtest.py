"""CLI to backtest one exit parameter set on synthetic trades."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from exit_tuner.config import DATA_DIR, LOG_FILE, env_defaults
from exit_tuner.engine import CsvResultStore, SeededRandom, run_batch
from exit_tuner.logging_utils import init_logging
from exit_tuner.strategy import ConfigurationError, ParameterSet


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    defaults = env_defaults()
    parser = argparse.ArgumentParser(description="Backtest exit thresholds on synthetic trades.")
    parser.add_argument("--tp1", type=float, default=defaults["tp1"], help="First take-profit ratio (STRAT_TP1).")
    parser.add_argument("--tp2", type=float, default=defaults["tp2"], help="Second take-profit ratio (STRAT_TP2).")
    parser.add_argument("--stop", type=float, default=defaults["stop"], help="Stop-loss ratio, negative (STRAT_STOP).")
    parser.add_argument("--max-hold", type=float, default=defaults["max_hold_minutes"], help="Max hold in minutes.")
    parser.add_argument("--stale-min", type=float, default=defaults["stale_minutes"], help="Inactivity timeout in minutes.")
    parser.add_argument("--samples", type=int, default=12, help="Number of synthetic trades.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs.")
    parser.add_argument("--output-dir", default=str(DATA_DIR), help="Directory for CSV result tables.")
    return parser.parse_args(argv)


def _build_params(args: argparse.Namespace) -> ParameterSet:
    """Combine env defaults and flags, raising on an invalid combination."""
    try:
        return ParameterSet(
            tp1=args.tp1,
            tp2=args.tp2,
            stop=args.stop,
            max_hold_minutes=args.max_hold,
            stale_minutes=args.stale_min,
        )
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid strategy parameters: {exc}") from exc


def run(params: ParameterSet, samples: int, seed: Optional[int], output_dir: Path):
    store = CsvResultStore(output_dir)
    summary = run_batch(params, samples, SeededRandom(seed), store=store)

    print(f"Backtest complete: {len(summary.samples)} trades simulated with {params.to_dict()}")
    print(f"Average PnL: {summary.avg_pnl_pct:.2f}% | Win rate: {summary.win_rate:.1f}%")
    print(f"Results appended under {output_dir}")
    return summary


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    params = _build_params(args)
    if args.samples <= 0:
        raise SystemExit(f"--samples must be positive, got {args.samples}")
    init_logging(log_file=LOG_FILE)
    return run(params, args.samples, args.seed, Path(args.output_dir))


if __name__ == "__main__":
    main()
