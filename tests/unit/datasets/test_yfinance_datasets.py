from __future__ import annotations

import datetime as dt
from pathlib import Path

import pandas as pd
import polars as pl
import pytest

from vol_forecasting.datasets.yfinance import (
    close_panel_coverage,
    read_close_panel,
    read_yfinance_time_series,
    scan_yfinance_time_series,
    yfinance_time_series_path,
)


def _write_parquet(path: Path, frame: pl.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.write_parquet(path)


def _write_panel(proc_root: Path) -> None:
    _write_parquet(
        yfinance_time_series_path(proc_root),
        pl.DataFrame(
            {
                "date": [
                    dt.datetime(2022, 1, 3),
                    dt.datetime(2022, 1, 3),
                    dt.datetime(2022, 1, 4),
                    dt.datetime(2022, 1, 4),
                    dt.datetime(2022, 1, 5),
                ],
                "ticker": ["SPX", "VIX", "SPX", "VIX", "SPX"],
                "close": [4796.6, 16.6, 4793.5, 16.9, 4700.6],
                "volume": [1_000, 0, 1_200, 0, 1_100],
            }
        ),
    )


def test_yfinance_time_series_path_builds_expected_location(tmp_path: Path) -> None:
    path = yfinance_time_series_path(tmp_path)
    assert path == tmp_path / "yfinance_time_series.parquet"


def test_scan_yfinance_time_series_raises_on_missing_file(tmp_path: Path) -> None:
    with pytest.raises(
        FileNotFoundError, match="Processed yfinance time-series not found"
    ):
        scan_yfinance_time_series(proc_root=tmp_path).collect()


def test_scan_yfinance_time_series_filters_tickers_and_columns(tmp_path: Path) -> None:
    _write_panel(tmp_path)

    out = (
        scan_yfinance_time_series(
            proc_root=tmp_path,
            tickers=["spx"],
            columns=["date", "ticker", "close"],
        )
        .collect()
        .sort("date")
    )

    assert out.columns == ["date", "ticker", "close"]
    assert out.height == 3
    assert set(out["ticker"].to_list()) == {"SPX"}


def test_scan_yfinance_time_series_accepts_caret_prefixed_references(
    tmp_path: Path,
) -> None:
    _write_panel(tmp_path)
    out = scan_yfinance_time_series(proc_root=tmp_path, tickers=["^VIX"]).collect()
    assert out.height == 2


def test_scan_yfinance_time_series_filters_dates(tmp_path: Path) -> None:
    _write_panel(tmp_path)
    out = scan_yfinance_time_series(
        proc_root=tmp_path, start="2022-01-04", end="2022-01-04"
    ).collect()
    assert out.height == 2


def test_scan_yfinance_time_series_rejects_empty_tickers(tmp_path: Path) -> None:
    _write_panel(tmp_path)
    with pytest.raises(
        ValueError, match="tickers must contain at least one non-empty symbol"
    ):
        scan_yfinance_time_series(proc_root=tmp_path, tickers=[" ", ""]).collect()


def test_read_yfinance_time_series_reads_full_frame(tmp_path: Path) -> None:
    _write_panel(tmp_path)
    out = read_yfinance_time_series(proc_root=tmp_path)
    assert out.height == 5


def test_read_close_panel_pivots_to_wide_frame(tmp_path: Path) -> None:
    _write_panel(tmp_path)

    wide = read_close_panel(["VIX", "^SPX"], proc_root=tmp_path)

    assert list(wide.columns) == ["SPX", "VIX"]
    assert isinstance(wide.index, pd.DatetimeIndex)
    assert wide.index.name == "date"
    assert len(wide) == 3
    assert wide.loc["2022-01-04", "VIX"] == pytest.approx(16.9)
    assert pd.isna(wide.loc["2022-01-05", "VIX"])


def test_read_close_panel_missing_ticker_raises(tmp_path: Path) -> None:
    _write_panel(tmp_path)
    with pytest.raises(ValueError, match=r"No rows found for tickers: \['VIX1Y'\]"):
        read_close_panel(["SPX", "VIX1Y"], proc_root=tmp_path)


def test_close_panel_coverage_reports_span_and_counts(tmp_path: Path) -> None:
    _write_panel(tmp_path)

    cov = close_panel_coverage(["^SPX", "vix", "VIX3M"], proc_root=tmp_path)

    assert cov.index.name == "ticker"
    assert cov.index.tolist() == ["SPX", "VIX", "VIX3M"]
    assert cov.loc["SPX", "first_date"] == pd.Timestamp("2022-01-03")
    assert cov.loc["SPX", "last_date"] == pd.Timestamp("2022-01-05")
    assert cov.loc["VIX", "last_date"] == pd.Timestamp("2022-01-04")
    assert cov["n_rows"].tolist() == [3, 2, 0]
    assert pd.isna(cov.loc["VIX3M", "first_date"])


def test_close_panel_coverage_counts_null_closes(tmp_path: Path) -> None:
    _write_parquet(
        yfinance_time_series_path(tmp_path),
        pl.DataFrame(
            {
                "date": [dt.datetime(2022, 1, 3), dt.datetime(2022, 1, 4)],
                "ticker": ["VIX", "VIX"],
                "close": [16.6, None],
            }
        ),
    )
    cov = close_panel_coverage(["VIX"], proc_root=tmp_path)
    assert cov.loc["VIX", "n_rows"] == 2
    assert cov.loc["VIX", "n_missing"] == 1


def test_close_panel_coverage_on_empty_panel(tmp_path: Path) -> None:
    _write_parquet(
        yfinance_time_series_path(tmp_path),
        pl.DataFrame(
            schema={"date": pl.Datetime("ns"), "ticker": pl.String, "close": pl.Float64}
        ),
    )
    cov = close_panel_coverage(["SPX", "VIX"], proc_root=tmp_path)
    assert cov["n_rows"].tolist() == [0, 0]
    assert cov["n_missing"].tolist() == [0, 0]
