"""Open position bookkeeping driven by exit decisions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

from exit_tuner.logging_utils import get_logger
from exit_tuner.strategy.params import ParameterSet
from exit_tuner.strategy.rules import Action, ExitDecision, decide_exit

logger = get_logger(__name__)


@dataclass(frozen=True)
class Position:
    id: str
    entry_timestamp: float  # epoch seconds
    entry_price: float
    size_tokens: float
    entry_notional: float


@dataclass(frozen=True)
class PositionSnapshot:
    position_id: str
    pnl_ratio: float
    age_minutes: float
    last_move_minutes: float


@dataclass(frozen=True)
class DecisionRecord:
    position_id: str
    action: str
    reason: str
    pnl_pct: float
    age_minutes: float
    size_tokens: float


def snapshot(position: Position, current_price: float, now: float, last_move_minutes: float) -> PositionSnapshot:
    """Build the decision inputs for ``position`` at time ``now`` (epoch seconds)."""
    pnl_ratio = (current_price - position.entry_price) / position.entry_price if position.entry_price else float("nan")
    age_minutes = (now - position.entry_timestamp) / 60.0
    return PositionSnapshot(position.id, pnl_ratio, age_minutes, last_move_minutes)


class PositionBook:
    """Owns the set of open positions and applies decisions to it."""

    def __init__(self, positions: Optional[Iterable[Position]] = None):
        self._open: Dict[str, Position] = {}
        for position in positions or []:
            self.open(position)

    def open(self, position: Position) -> None:
        if position.id in self._open:
            raise ValueError(f"position {position.id!r} is already open")
        self._open[position.id] = position

    def get(self, position_id: str) -> Optional[Position]:
        return self._open.get(position_id)

    def positions(self) -> List[Position]:
        return list(self._open.values())

    def __len__(self) -> int:
        return len(self._open)

    def __contains__(self, position_id: object) -> bool:
        return position_id in self._open

    def apply(self, position_id: str, decision: ExitDecision) -> Optional[Position]:
        """Apply ``decision`` and return the position as it stands afterwards.

        Returns None when the position is closed by the decision or was
        not open to begin with.
        """
        position = self._open.get(position_id)
        if position is None:
            return None
        if decision.closes_position:
            del self._open[position_id]
            return None
        if decision.action is Action.SELL_HALF:
            position = replace(position, size_tokens=position.size_tokens / 2)
            self._open[position_id] = position
        return position


def manage_positions(
    book: PositionBook,
    snapshots: Iterable[PositionSnapshot],
    params: ParameterSet,
) -> List[DecisionRecord]:
    """Decide and apply an exit action for every snapshot of an open position."""
    records: List[DecisionRecord] = []
    for snap in snapshots:
        position = book.get(snap.position_id)
        if position is None:
            logger.debug("Skipping snapshot for closed position %s", snap.position_id)
            continue

        decision = decide_exit(snap.pnl_ratio, snap.age_minutes, snap.last_move_minutes, params)
        remaining = book.apply(snap.position_id, decision)
        pnl_pct = snap.pnl_ratio * 100

        if decision.closes_position:
            logger.info("%s on %s | %s | PnL %.2f%%", decision.action.value, position.id, decision.reason, pnl_pct)
        elif decision.action is Action.SELL_HALF:
            logger.info("Partial take-profit on %s | PnL %.2f%%", position.id, pnl_pct)
        else:
            logger.debug("Holding %s | age=%.1fm | PnL=%.2f%%", position.id, snap.age_minutes, pnl_pct)

        records.append(
            DecisionRecord(
                position_id=position.id,
                action=decision.action.value,
                reason=decision.reason,
                pnl_pct=pnl_pct,
                age_minutes=snap.age_minutes,
                size_tokens=remaining.size_tokens if remaining else 0.0,
            )
        )
    return records
