"""Append-only result tables for trades, batch summaries, and evolution history."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol

import pandas as pd

from exit_tuner.config import HISTORY_TABLE, SUMMARY_TABLE, TRADES_TABLE
from exit_tuner.strategy.errors import MissingHistoryError

TRADE_COLUMNS = ["mint_or_id", "entry_price", "exit_price", "pnl_pct", "decision"]
SUMMARY_COLUMNS = ["tp1", "tp2", "stop", "maxHoldMinutes", "win_rate", "avg_pnl"]
HISTORY_COLUMNS = ["tp1", "tp2", "stop", "maxHoldMinutes", "win_rate", "avg_pnl", "fitness"]

TABLE_COLUMNS: Dict[str, List[str]] = {
    TRADES_TABLE: TRADE_COLUMNS,
    SUMMARY_TABLE: SUMMARY_COLUMNS,
    HISTORY_TABLE: HISTORY_COLUMNS,
}


class ResultStore(Protocol):
    def append(self, table: str, row: Mapping[str, Any]) -> None:
        ...

    def read_last(self, table: str) -> Dict[str, Any]:
        ...

    def read_table(self, table: str) -> pd.DataFrame:
        ...


def _ordered(table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Project ``row`` onto the table's stable column order."""
    columns = TABLE_COLUMNS.get(table)
    if columns is None:
        return dict(row)
    missing = [col for col in columns if col not in row]
    if missing:
        raise KeyError(f"row for {table!r} is missing columns {missing}")
    return {col: row[col] for col in columns}


def _plain(value: Any) -> Any:
    return value.item() if hasattr(value, "item") else value


class InMemoryResultStore:
    """ResultStore kept in process memory; handy for tests and optimizer runs."""

    def __init__(self):
        self._tables: Dict[str, List[Dict[str, Any]]] = {}

    def append(self, table: str, row: Mapping[str, Any]) -> None:
        self._tables.setdefault(table, []).append(_ordered(table, row))

    def read_last(self, table: str) -> Dict[str, Any]:
        rows = self._tables.get(table)
        if not rows:
            raise MissingHistoryError(f"table {table!r} has no rows")
        return dict(rows[-1])

    def read_table(self, table: str) -> pd.DataFrame:
        rows = self._tables.get(table, [])
        return pd.DataFrame(rows, columns=TABLE_COLUMNS.get(table))


class CsvResultStore:
    """ResultStore writing one CSV file per table under ``directory``.

    The header is written when a file is created; later rows are appended,
    so repeated runs accumulate history.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, table: str) -> Path:
        return self.directory / f"{table}.csv"

    def append(self, table: str, row: Mapping[str, Any]) -> None:
        self.append_many(table, [row])

    def append_many(self, table: str, rows: List[Mapping[str, Any]]) -> None:
        if not rows:
            return
        path = self.path_for(table)
        frame = pd.DataFrame([_ordered(table, row) for row in rows])
        frame.to_csv(path, mode="a", header=not path.exists(), index=False)

    def read_table(self, table: str) -> pd.DataFrame:
        path = self.path_for(table)
        if not path.exists():
            return pd.DataFrame(columns=TABLE_COLUMNS.get(table))
        return pd.read_csv(path)

    def read_last(self, table: str) -> Dict[str, Any]:
        frame = self.read_table(table)
        if frame.empty:
            raise MissingHistoryError(f"table {table!r} has no rows at {self.path_for(table)}")
        return {key: _plain(value) for key, value in frame.iloc[-1].to_dict().items()}
