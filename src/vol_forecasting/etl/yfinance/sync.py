"""Download daily index/vol-index prices from yfinance into parquet files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import pandas as pd
import yfinance as yf

from vol_forecasting.config.constants import YFINANCE_SYMBOLS

logger = logging.getLogger(__name__)

PRICE_COLUMNS = {
    "Open": "open",
    "High": "high",
    "Low": "low",
    "Close": "close",
    "Adj Close": "adj_close",
    "Volume": "volume",
}

PROCESSED_COLUMNS = [
    "date",
    "ticker",
    "open",
    "high",
    "low",
    "close",
    "adj_close",
    "volume",
]


def _flatten_columns(frame: pd.DataFrame, *, symbol: str) -> pd.DataFrame:
    """Reduce yfinance's (field, symbol) MultiIndex to single-level field columns."""
    if not isinstance(frame.columns, pd.MultiIndex):
        return frame

    out = frame.copy()
    cols = out.columns
    if cols.nlevels == 2:
        fields = cols.get_level_values(0)
        symbols = cols.get_level_values(1)
        if symbols.nunique() == 1:
            out.columns = fields
            return out
        if symbol in set(symbols):
            selected = out.xs(symbol, axis=1, level=1, drop_level=True)
            if isinstance(selected, pd.Series):
                return selected.to_frame()
            return selected

    multi_columns = cast(pd.MultiIndex, out.columns)
    out.columns = [
        "_".join(str(part) for part in col if str(part))
        for col in multi_columns.to_flat_index()
    ]
    return out


def resolve_symbol(ticker: str) -> tuple[str, str]:
    """Map a user ticker to `(yfinance_symbol, storage_ticker)`.

    `VIX` and `^VIX` both resolve to ("^VIX", "VIX"); `SPX` resolves to "^GSPC".
    """
    normalized = str(ticker).strip().upper()
    if not normalized:
        raise ValueError("tickers must contain non-empty symbols")

    storage = normalized.removeprefix("^")
    if not storage:
        raise ValueError(f"ticker {ticker!r} resolved to an empty storage symbol")
    if normalized.startswith("^"):
        return normalized, storage
    return YFINANCE_SYMBOLS.get(normalized, normalized), storage


def _build_ticker_plan(tickers: list[str]) -> list[tuple[str, str]]:
    """Return ordered unique `(yfinance_symbol, storage_ticker)` pairs."""
    plan: dict[str, str] = {}
    for ticker in tickers:
        symbol, storage = resolve_symbol(ticker)
        existing = plan.get(storage)
        if existing is None:
            plan[storage] = symbol
        elif existing != symbol:
            raise ValueError(
                "Ambiguous ticker mapping for storage symbol "
                f"'{storage}': '{existing}' vs '{symbol}'."
            )
    return [(symbol, storage) for storage, symbol in plan.items()]


def download_daily_prices(
    *,
    symbol: str,
    start: str | None,
    end: str | None,
    auto_adjust: bool = False,
) -> pd.DataFrame:
    """Fetch one symbol's daily bars with lower-case columns and a naive DatetimeIndex."""
    frame = yf.download(
        symbol,
        start=start,
        end=end,
        interval="1d",
        auto_adjust=auto_adjust,
        actions=False,
        progress=False,
    )
    if frame is None or frame.empty:
        return pd.DataFrame()

    out = _flatten_columns(frame, symbol=symbol)
    out.columns = [str(col) for col in out.columns]
    out = out.rename(columns=PRICE_COLUMNS)
    out.index = pd.to_datetime(out.index).tz_localize(None)
    out.index.name = "date"
    return out.sort_index()


def sync_yfinance_time_series(
    *,
    tickers: list[str],
    raw_root: Path,
    proc_root: Path,
    start: str | None = None,
    end: str | None = None,
    auto_adjust: bool = False,
    overwrite: bool = False,
) -> Path:
    """Download `tickers`, write per-ticker raw parquet and one long processed parquet."""
    plan = _build_ticker_plan(tickers)
    raw_root.mkdir(parents=True, exist_ok=True)
    proc_root.mkdir(parents=True, exist_ok=True)

    frames: list[pd.DataFrame] = []
    for symbol, storage in plan:
        frame = download_daily_prices(
            symbol=symbol, start=start, end=end, auto_adjust=auto_adjust
        )
        if frame.empty:
            logger.warning("No rows returned for %s (%s)", storage, symbol)
            continue
        logger.info("Downloaded %s rows for %s (%s)", len(frame), storage, symbol)

        raw_path = raw_root / f"{storage}.parquet"
        if overwrite or not raw_path.exists():
            frame.to_parquet(raw_path, index=True)

        long = frame.reset_index()
        long["ticker"] = storage
        frames.append(long)

    if frames:
        processed = pd.concat(frames, ignore_index=True).sort_values(["date", "ticker"])
        processed = processed.reindex(
            columns=[c for c in PROCESSED_COLUMNS if c in processed.columns]
        )
    else:
        processed = pd.DataFrame(
            {
                "date": pd.Series(dtype="datetime64[ns]"),
                "ticker": pd.Series(dtype="string"),
                **{c: pd.Series(dtype=float) for c in PROCESSED_COLUMNS[2:]},
            }
        )

    proc_path = proc_root / "yfinance_time_series.parquet"
    if overwrite or not proc_path.exists():
        processed.to_parquet(proc_path, index=False)
    return proc_path
