"""Exceptions raised by the exit tuner."""

from __future__ import annotations


class ExitTunerError(Exception):
    """Base class for all exit tuner errors."""


class ConfigurationError(ExitTunerError, ValueError):
    """A parameter set or run setting violates its invariants."""


class EmptySampleError(ExitTunerError):
    """A backtest batch produced no samples to aggregate."""


class MissingHistoryError(ExitTunerError, LookupError):
    """A result table was read before any row was appended to it."""
