from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def parse_printed_config():
    def _parse(text: str) -> dict[str, Any]:
        return json.loads(text)

    return _parse


@pytest.fixture
def run_help(capsys):
    def _run(mod, expected: str) -> None:
        with pytest.raises(SystemExit) as exc:
            mod.main(["--help"])
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert expected in out

    return _run


@pytest.fixture
def run_print_config(capsys, parse_printed_config):
    def _run(mod, config_path: str) -> dict[str, Any]:
        mod.main(
            [
                "--config",
                config_path,
                "--print-config",
            ]
        )
        return parse_printed_config(capsys.readouterr().out)

    return _run


@pytest.fixture
def assert_paths_exist():
    def _assert(cfg: dict[str, Any], paths: list[tuple[str, ...]]) -> None:
        for keys in paths:
            cur: Any = cfg
            for key in keys:
                assert key in cur
                cur = cur[key]

    return _assert


@pytest.fixture
def closes_csv(tmp_path: Path) -> Path:
    """Two years of synthetic SPX / VIX / VIX3M closes in yfinance-style columns."""
    rng = np.random.default_rng(0)
    index = pd.bdate_range("2019-01-01", "2020-12-31", name="date")
    n = len(index)
    vol = 0.15 + 0.05 * np.sin(np.linspace(0, 8, n))
    spx = 2500.0 * np.exp(np.cumsum(rng.normal(0, vol / np.sqrt(252))))
    vix = 100 * (0.03 + vol) + rng.normal(0, 0.5, n)
    frame = pd.DataFrame(
        {"^GSPC": spx, "^VIX": vix, "^VIX3M": vix + 1.0},
        index=index,
    ).rename(columns={"^GSPC": "SPX"})
    path = tmp_path / "closes.csv"
    frame.to_csv(path)
    return path
