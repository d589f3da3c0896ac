"""Offline loader for close prices kept in a local CSV file."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pandas as pd


def read_close_csv(
    path: Path | str,
    *,
    date_column: str = "date",
    columns: Sequence[str] | None = None,
    start: str | None = None,
    end: str | None = None,
) -> pd.DataFrame:
    """Read a wide CSV (date + one close column per ticker) into a date-indexed frame.

    Column names are upper-cased and stripped of a leading "^" so that a file
    exported from yfinance ("^VIX") lines up with internal tickers ("VIX").
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Close-price CSV not found: {p}")

    frame = pd.read_csv(p)
    if date_column not in frame.columns:
        raise ValueError(f"CSV {p} has no {date_column!r} column")

    frame[date_column] = pd.to_datetime(frame[date_column])
    frame = frame.set_index(date_column).sort_index()
    frame.index.name = "date"
    frame.columns = [str(c).strip().upper().removeprefix("^") for c in frame.columns]
    frame = frame[~frame.index.duplicated(keep="last")]

    if columns is not None:
        wanted = [str(c).strip().upper().removeprefix("^") for c in columns]
        missing = [c for c in wanted if c not in frame.columns]
        if missing:
            raise ValueError(f"CSV {p} is missing columns: {missing}")
        frame = frame[wanted]
    if start is not None:
        frame = frame.loc[start:]
    if end is not None:
        frame = frame.loc[:end]
    return frame.apply(pd.to_numeric, errors="coerce")
