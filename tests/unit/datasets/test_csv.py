from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from vol_forecasting.datasets.csv import read_close_csv


def _write_csv(path: Path) -> Path:
    path.write_text(
        "date,^GSPC,^VIX,spx\n"
        "2022-01-04,4793.5,16.9,4793.5\n"
        "2022-01-03,4796.6,16.6,4796.6\n"
        "2022-01-05,4700.6,19.7,4700.6\n",
        encoding="utf-8",
    )
    return path


def test_read_close_csv_normalizes_columns_and_sorts(tmp_path: Path) -> None:
    frame = read_close_csv(_write_csv(tmp_path / "closes.csv"))

    assert list(frame.columns) == ["GSPC", "VIX", "SPX"]
    assert frame.index.name == "date"
    assert frame.index.is_monotonic_increasing
    assert frame.loc[pd.Timestamp("2022-01-03"), "VIX"] == pytest.approx(16.6)


def test_read_close_csv_selects_columns_and_window(tmp_path: Path) -> None:
    frame = read_close_csv(
        _write_csv(tmp_path / "closes.csv"),
        columns=["spx", "^VIX"],
        start="2022-01-04",
        end="2022-01-05",
    )
    assert list(frame.columns) == ["SPX", "VIX"]
    assert len(frame) == 2


def test_read_close_csv_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Close-price CSV not found"):
        read_close_csv(tmp_path / "missing.csv")

    path = _write_csv(tmp_path / "closes.csv")
    with pytest.raises(ValueError, match="missing columns"):
        read_close_csv(path, columns=["VIX3M"])
    with pytest.raises(ValueError, match="has no 'Date' column"):
        read_close_csv(path, date_column="Date")
