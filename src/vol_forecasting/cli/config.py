"""YAML + CLI configuration merging for the analysis apps.

Each app owns a ``DEFAULT_CONFIG`` dict. ``build_config`` layers a YAML file
and the CLI overrides on top of it and rejects keys the app does not know,
so a typo such as ``cv: {n_fold: 5}`` fails instead of being ignored.
Sections whose default is an empty mapping (``model_params``,
``logging.modules``) are free-form.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


def add_config_arg(parser, *, default: str | None = None) -> None:
    parser.add_argument(
        "--config",
        type=str,
        default=default,
        help="YAML file merged over the app defaults (CLI flags win).",
    )


def load_yaml_config(path: str | Path | None) -> dict[str, Any]:
    """Read a YAML mapping; `None` means no config file, an empty file an empty mapping."""
    if path is None:
        return {}

    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Config file not found: {p}")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file must contain a YAML mapping at the top level, got {type(data).__name__}."
        )
    return data


def deep_merge(
    base: Mapping[str, Any],
    updates: Mapping[str, Any],
) -> dict[str, Any]:
    """Return a copy of `base` with `updates` merged in; mappings recurse, lists are replaced."""
    merged = copy.deepcopy(dict(base))
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def unknown_keys(
    defaults: Mapping[str, Any],
    config: Mapping[str, Any],
    prefix: str = "",
) -> list[str]:
    """Dotted paths of keys in `config` that `defaults` does not declare."""
    out: list[str] = []
    for key, value in config.items():
        path = f"{prefix}{key}"
        if key not in defaults:
            out.append(path)
            continue
        known = defaults[key]
        if isinstance(known, Mapping) and known and isinstance(value, Mapping):
            out.extend(unknown_keys(known, value, prefix=f"{path}."))
    return out


def build_config(
    defaults: Mapping[str, Any],
    yaml_path: str | Path | None,
    overrides: Mapping[str, Any] | None = None,
    *,
    strict: bool = True,
) -> dict[str, Any]:
    """Precedence: CLI overrides > YAML file > app defaults.

    With ``strict`` (the default) a YAML key missing from ``defaults`` raises
    ValueError naming every offending dotted path.
    """
    file_config = load_yaml_config(yaml_path)
    if strict:
        bad = unknown_keys(defaults, file_config)
        if bad:
            raise ValueError(f"Unknown config key(s) in {yaml_path}: {', '.join(bad)}")

    config = deep_merge(defaults, file_config)
    if overrides:
        config = deep_merge(config, overrides)
    return config


def resolve_path(value: str | Path | None) -> Path | None:
    """Expand `~` and `$VARS`; `None` passes through."""
    if value is None or isinstance(value, Path):
        return value
    return Path(os.path.expandvars(os.path.expanduser(str(value))))
