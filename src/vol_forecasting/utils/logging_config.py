"""Logging setup for the analysis entrypoints.

Library modules only create `logger = logging.getLogger(__name__)`; the apps
call `setup_logging(...)` once before any modelling runs.

The console handler injects `record.shortname` (the last dotted component of
the logger name), so console formats may use `%(shortname)s`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

# Libraries that log at INFO/DEBUG on every download or figure render.
NOISY_LOGGERS: tuple[str, ...] = (
    "yfinance",
    "peewee",
    "urllib3",
    "requests",
    "matplotlib",
    "PIL",
)


class _AddShortNameFilter(logging.Filter):
    """Inject `record.shortname` without touching `record.name`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.shortname = record.name.split(".")[-1]
        return True


class _ColorFormatter(logging.Formatter):
    """Console formatter that colours the level name only."""

    _RESET = "\033[0m"
    _LEVEL_COLOR: dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self._LEVEL_COLOR.get(record.levelno)
        if not color:
            return super().format(record)

        original = record.levelname
        record.levelname = f"{color}{original}{self._RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def coerce_level(level: int | str) -> int:
    """Return a numeric logging level from an int, digit string or name."""
    if isinstance(level, int):
        return level

    s = str(level).strip().upper()
    if not s:
        raise ValueError("Empty logging level")
    if s.isdigit():
        return int(s)

    named = logging.getLevelNamesMapping()
    if s == "WARN":
        s = "WARNING"
    try:
        return named[s]
    except KeyError as e:
        raise ValueError(f"Unknown logging level: {level!r}") from e


def setup_logging(
    level: int | str = "INFO",
    *,
    fmt_console: str = "%(asctime)s %(levelname)s %(name)s - %(message)s",
    fmt_file: str = "%(asctime)s %(levelname)s %(name)s - %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    log_file: str | Path | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    colored: bool = False,
    quiet_third_party: bool = True,
) -> None:
    """Configure root logging for a script run.

    Parameters
    - level: root level, e.g. "INFO" or logging.DEBUG.
    - fmt_console / fmt_file: formats for the console and optional file handler.
    - log_file: also write plain (uncoloured) logs to this path.
    - module_levels: per-logger level overrides, e.g. {"vol_forecasting.modelling": "DEBUG"}.
    - colored: ANSI-colour the console level names.
    - quiet_third_party: raise download/plotting libraries to WARNING.

    Uses `force=True` so repeated calls from a notebook replace the handlers.
    """
    root_level = coerce_level(level)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.addFilter(_AddShortNameFilter())
    if colored:
        console.setFormatter(_ColorFormatter(fmt=fmt_console, datefmt=datefmt))
    else:
        console.setFormatter(logging.Formatter(fmt=fmt_console, datefmt=datefmt))
    handlers.append(console)

    if log_file is not None:
        p = Path(log_file)
        p.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setFormatter(logging.Formatter(fmt=fmt_file, datefmt=datefmt))
        handlers.append(fh)

    logging.basicConfig(level=root_level, handlers=handlers, force=True)

    if module_levels:
        for name, lvl in module_levels.items():
            logging.getLogger(name).setLevel(coerce_level(lvl))

    if quiet_third_party:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
