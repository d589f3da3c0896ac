"""Shared argparse helpers for the app entrypoints."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from vol_forecasting.cli.logging import parse_module_levels


def ensure_list(value: Any) -> list[Any] | None:
    """Normalize a scalar/iterable config value into a list or `None`."""
    if value is None:
        return None
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def add_print_config_arg(parser) -> None:
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the merged config as JSON and exit.",
    )


def add_dry_run_arg(parser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve config and log the plan; no download, fit or file output.",
    )


_LOGGING_FLAGS = {
    "log_level": "level",
    "log_file": "file",
    "log_format": "format",
}


def collect_logging_overrides(args) -> dict[str, Any]:
    """The `logging:` section implied by `--log-*` / `--color` flags."""
    overrides = {
        key: getattr(args, flag)
        for flag, key in _LOGGING_FLAGS.items()
        if getattr(args, flag, None)
    }
    if getattr(args, "log_color", None) is not None:
        overrides["color"] = args.log_color
    if getattr(args, "log_modules", None):
        overrides["modules"] = parse_module_levels(args.log_modules)
    return overrides


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Mapping):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_jsonable(v) for v in obj]
    return obj


def to_json(obj: Any) -> str:
    """Deterministic, indented JSON with paths as strings."""
    return json.dumps(_jsonable(obj), indent=2, sort_keys=True)


def print_config(config: Mapping[str, Any]) -> None:
    print(to_json(config))


def log_dry_run(logger, plan: Mapping[str, Any]) -> None:
    logger.info("DRY RUN: nothing downloaded, fitted or written.")
    logger.info("DRY RUN plan:\n%s", to_json(plan))
