"""Readers for the processed yfinance time-series parquet."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pandas as pd
import polars as pl

from vol_forecasting.config.paths import PROC_YFINANCE_TIME_SERIES


def yfinance_time_series_path(
    proc_root: Path | str = PROC_YFINANCE_TIME_SERIES,
) -> Path:
    return Path(proc_root) / "yfinance_time_series.parquet"


def _normalize_tickers(tickers: Sequence[str]) -> list[str]:
    normalized = {str(t).strip().upper().removeprefix("^") for t in tickers}
    normalized.discard("")
    if not normalized:
        raise ValueError("tickers must contain at least one non-empty symbol")
    return sorted(normalized)


def scan_yfinance_time_series(
    *,
    proc_root: Path | str = PROC_YFINANCE_TIME_SERIES,
    columns: Sequence[str] | None = None,
    tickers: Sequence[str] | None = None,
    start: str | None = None,
    end: str | None = None,
) -> pl.LazyFrame:
    """Lazily scan the processed parquet, optionally filtered by ticker and date."""
    path = yfinance_time_series_path(proc_root)
    if not path.exists():
        raise FileNotFoundError(f"Processed yfinance time-series not found: {path}")

    lf = pl.scan_parquet(path)
    if tickers is not None:
        lf = lf.filter(pl.col("ticker").is_in(_normalize_tickers(tickers)))
    if start is not None:
        lf = lf.filter(pl.col("date") >= pl.lit(pd.Timestamp(start).to_pydatetime()))
    if end is not None:
        lf = lf.filter(pl.col("date") <= pl.lit(pd.Timestamp(end).to_pydatetime()))
    if columns is not None:
        lf = lf.select(list(columns))
    return lf


def read_yfinance_time_series(
    *,
    proc_root: Path | str = PROC_YFINANCE_TIME_SERIES,
    columns: Sequence[str] | None = None,
    tickers: Sequence[str] | None = None,
    start: str | None = None,
    end: str | None = None,
) -> pl.DataFrame:
    return scan_yfinance_time_series(
        proc_root=proc_root,
        columns=columns,
        tickers=tickers,
        start=start,
        end=end,
    ).collect()


def read_close_panel(
    tickers: Sequence[str],
    *,
    proc_root: Path | str = PROC_YFINANCE_TIME_SERIES,
    start: str | None = None,
    end: str | None = None,
    price_column: str = "close",
) -> pd.DataFrame:
    """Return a wide pandas frame of closes: DatetimeIndex `date` x one column per ticker.

    Dates missing for a ticker are left as NaN; joining and dropping is the
    feature builder's job.
    """
    wanted = _normalize_tickers(tickers)
    long = (
        scan_yfinance_time_series(
            proc_root=proc_root,
            columns=["date", "ticker", price_column],
            tickers=wanted,
            start=start,
            end=end,
        )
        .collect()
        .to_pandas()
    )
    missing = sorted(set(wanted) - set(long["ticker"].unique()))
    if missing:
        raise ValueError(f"No rows found for tickers: {missing}")

    wide = long.pivot(index="date", columns="ticker", values=price_column)
    wide.index = pd.to_datetime(wide.index)
    wide.index.name = "date"
    wide.columns.name = None
    return wide.sort_index()[wanted]


def close_panel_coverage(
    tickers: Sequence[str],
    *,
    proc_root: Path | str = PROC_YFINANCE_TIME_SERIES,
    price_column: str = "close",
) -> pd.DataFrame:
    """Per-ticker date span and row counts of the closes `read_close_panel` would return.

    Tickers absent from the parquet are kept with `n_rows == 0` and missing dates.
    """
    wanted = _normalize_tickers(tickers)
    stats = (
        scan_yfinance_time_series(
            proc_root=proc_root,
            columns=["date", "ticker", price_column],
            tickers=wanted,
        )
        .group_by("ticker")
        .agg(
            pl.col("date").min().alias("first_date"),
            pl.col("date").max().alias("last_date"),
            pl.len().alias("n_rows"),
            pl.col(price_column).null_count().alias("n_missing"),
        )
        .collect()
        .to_pandas()
        .set_index("ticker")
        .reindex(wanted)
    )
    stats.index.name = "ticker"
    stats[["n_rows", "n_missing"]] = stats[["n_rows", "n_missing"]].fillna(0).astype(int)
    return stats
