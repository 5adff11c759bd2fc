"""Central logging setup shared by library modules and CLIs."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGGER_INITIALIZED = False


def init_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> None:
    """Configure the package logger once with a console handler and optional file handler."""
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    root = logging.getLogger("exit_tuner")
    root.setLevel(level)
    if root.handlers:
        root.handlers.clear()

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

    _LOGGER_INITIALIZED = True
    root.debug("Logging initialized (file=%s)", log_file)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the ``exit_tuner`` namespace."""
    return logging.getLogger(name if name else "exit_tuner")
