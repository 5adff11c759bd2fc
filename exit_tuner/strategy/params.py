"""Exit threshold parameter sets."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping

from exit_tuner.strategy.errors import ConfigurationError

# Stable keys used in CSV tables and JSON artifacts.
FIELD_KEYS: Dict[str, str] = {
    "tp1": "tp1",
    "tp2": "tp2",
    "stop": "stop",
    "max_hold_minutes": "maxHoldMinutes",
    "stale_minutes": "staleMinutes",
}

PRECISION = 2
MIN_STEP = 0.01


@dataclass(frozen=True)
class ParameterSet:
    """Take-profit, stop-loss and timeout thresholds for one exit policy.

    PnL thresholds are ratios (0.25 == +25%), the stop is negative.
    Construction fails with ConfigurationError when the invariants
    ``tp2 > tp1 > 0``, ``stop < 0`` and positive timeouts do not hold.
    """

    tp1: float = 0.25
    tp2: float = 0.50
    stop: float = -0.20
    max_hold_minutes: int = 15
    stale_minutes: int = 5

    def __post_init__(self) -> None:
        for name in FIELD_KEYS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be numeric, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite, got {value!r}")
        for name in ("max_hold_minutes", "stale_minutes"):
            value = getattr(self, name)
            if not float(value).is_integer():
                raise ConfigurationError(f"{name} must be a whole number of minutes, got {value!r}")
            # 15.0 read back from a CSV column is stored as 15
            object.__setattr__(self, name, int(value))
        if self.tp1 <= 0:
            raise ConfigurationError(f"tp1 must be positive, got {self.tp1}")
        if self.tp2 <= self.tp1:
            raise ConfigurationError(f"tp2 ({self.tp2}) must exceed tp1 ({self.tp1})")
        if self.stop >= 0:
            raise ConfigurationError(f"stop must be negative, got {self.stop}")
        if self.max_hold_minutes <= 0:
            raise ConfigurationError(f"max_hold_minutes must be positive, got {self.max_hold_minutes}")
        if self.stale_minutes <= 0:
            raise ConfigurationError(f"stale_minutes must be positive, got {self.stale_minutes}")

    @classmethod
    def clamped(
        cls,
        tp1: float,
        tp2: float,
        stop: float,
        max_hold_minutes: float,
        stale_minutes: float,
    ) -> "ParameterSet":
        """Return the nearest valid set for raw (possibly invalid) values.

        Inverted take-profits are swapped, then pulled apart by one step if
        they coincide. The stop is pushed below zero and timeouts to at
        least one minute. Ratios are rounded to ``PRECISION`` decimals.
        """
        values = (tp1, tp2, stop, max_hold_minutes, stale_minutes)
        if not all(math.isfinite(v) for v in values):
            raise ConfigurationError(f"cannot clamp non-finite parameters: {values}")

        low, high = sorted((round(tp1, PRECISION), round(tp2, PRECISION)))
        low = max(low, MIN_STEP)
        high = max(high, round(low + MIN_STEP, PRECISION))
        stop = min(round(stop, PRECISION), -MIN_STEP)
        return cls(
            tp1=low,
            tp2=high,
            stop=stop,
            max_hold_minutes=max(int(max_hold_minutes), 1),
            stale_minutes=max(int(stale_minutes), 1),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {FIELD_KEYS[name]: value for name, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParameterSet":
        """Build from a mapping using the stable keys; missing timeouts use defaults."""
        try:
            kwargs: Dict[str, Any] = {
                "tp1": float(data["tp1"]),
                "tp2": float(data["tp2"]),
                "stop": float(data["stop"]),
            }
            if FIELD_KEYS["max_hold_minutes"] in data:
                kwargs["max_hold_minutes"] = float(data[FIELD_KEYS["max_hold_minutes"]])
            if FIELD_KEYS["stale_minutes"] in data:
                kwargs["stale_minutes"] = float(data[FIELD_KEYS["stale_minutes"]])
        except KeyError as exc:
            raise ConfigurationError(f"missing parameter {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid parameter value: {exc}") from exc
        return cls(**kwargs)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: str) -> "ParameterSet":
        return cls.from_dict(json.loads(payload))
