"""Exit thresholds, decision rules, and position bookkeeping."""

from exit_tuner.strategy.errors import ConfigurationError, EmptySampleError, ExitTunerError, MissingHistoryError
from exit_tuner.strategy.params import ParameterSet
from exit_tuner.strategy.rules import Action, ExitDecision, decide_exit

__all__ = [
    "Action",
    "ConfigurationError",
    "EmptySampleError",
    "ExitDecision",
    "ExitTunerError",
    "MissingHistoryError",
    "ParameterSet",
    "decide_exit",
]
