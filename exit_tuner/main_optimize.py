"""CLI to pick the best configuration from accumulated backtest summaries."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from exit_tuner.config import BEST_SUMMARY_FILE, DATA_DIR, LOG_FILE, SUMMARY_TABLE
from exit_tuner.engine import CsvResultStore, get_scoring_policy
from exit_tuner.engine.optimize import best_from_summary, save_best_config
from exit_tuner.engine.scoring import SCORING_POLICIES
from exit_tuner.logging_utils import init_logging
from exit_tuner.strategy import ConfigurationError, MissingHistoryError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank backtest summaries and save the best configuration.")
    parser.add_argument("--data-dir", default=str(DATA_DIR), help="Directory holding backtest_summary.csv.")
    parser.add_argument("--scoring", choices=sorted(SCORING_POLICIES), default="weighted", help="Fitness policy.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    init_logging(log_file=LOG_FILE)
    data_dir = Path(args.data_dir)
    store = CsvResultStore(data_dir)
    try:
        best = best_from_summary(store, get_scoring_policy(args.scoring))
        path = save_best_config(data_dir / BEST_SUMMARY_FILE, best)
    except (MissingHistoryError, ConfigurationError) as exc:
        raise SystemExit(f"Cannot optimize: {exc}") from exc

    print(f"Parsed {len(store.read_table(SUMMARY_TABLE))} summary rows.")
    print("Best configuration:")
    for key, value in best.items():
        print(f"  {key}: {value}")
    print(f"Saved best config to {path}")
    return best


if __name__ == "__main__":
    main()
