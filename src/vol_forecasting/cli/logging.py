"""Logging flags and the `logging:` config section shared by the apps."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from vol_forecasting.utils.logging_config import coerce_level, setup_logging

DEFAULT_LOGGING: dict[str, Any] = {
    "level": "INFO",
    "format": "%(asctime)s %(levelname)s %(shortname)s - %(message)s",
    "file": None,
    "color": True,
    "modules": {},
}


def add_logging_args(parser) -> None:
    group = parser.add_argument_group("logging")
    group.add_argument("--log-level", default=None, help="Root level, e.g. INFO or DEBUG.")
    group.add_argument("--log-file", default=None, help="Also write logs to this file.")
    group.add_argument("--log-format", default=None, help="Console format string.")
    group.add_argument(
        "--log-module",
        dest="log_modules",
        action="append",
        default=None,
        metavar="LOGGER=LEVEL",
        help="Per-logger level, repeatable (e.g. vol_forecasting.modelling=DEBUG).",
    )
    group.add_argument("--color", dest="log_color", action="store_true", help="Colour level names.")
    group.add_argument("--no-color", dest="log_color", action="store_false", help="Plain console logs.")
    parser.set_defaults(log_color=None)


def parse_module_levels(items: Iterable[str]) -> dict[str, str]:
    """Turn ``["a.b=DEBUG", ...]`` into ``{"a.b": "DEBUG"}``, validating each level."""
    levels: dict[str, str] = {}
    for item in items:
        name, sep, level = str(item).partition("=")
        name, level = name.strip(), level.strip()
        if not sep or not name or not level:
            raise ValueError(f"Expected LOGGER=LEVEL, got {item!r}")
        coerce_level(level)
        levels[name] = level.upper()
    return levels


def _normalize_logging_config(config: Mapping[str, Any] | None) -> dict[str, Any]:
    merged = dict(DEFAULT_LOGGING)
    for key, value in (config or {}).items():
        if key in merged and value is not None:
            merged[key] = value
    return merged


def setup_logging_from_config(config: Mapping[str, Any] | None) -> None:
    log_cfg = _normalize_logging_config(config)
    setup_logging(
        log_cfg["level"],
        fmt_console=log_cfg["format"],
        log_file=log_cfg["file"],
        module_levels=log_cfg["modules"] or None,
        colored=log_cfg["color"],
    )
