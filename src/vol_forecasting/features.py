"""Return, realized-volatility and dataset construction helpers.

A *dataset* here is the frame the modelling code consumes: a sorted, unique
DatetimeIndex named ``date``, a ``predictor`` column, a ``response`` column
and optionally extra exogenous columns, with no missing values.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import numpy as np
import pandas as pd

from vol_forecasting.config.constants import (
    RV_WINDOW,
    TRADING_DAYS_PER_YEAR,
    VOL_INDEX_POINTS_PER_UNIT,
)

logger = logging.getLogger(__name__)

PREDICTOR = "predictor"
RESPONSE = "response"


def log_returns(prices: pd.Series) -> pd.Series:
    """log(P_t / P_{t-1}); the first entry is NaN."""
    out = np.log(prices).diff()
    out.name = f"{prices.name}_logret" if prices.name is not None else "logret"
    return out


def realized_volatility(
    returns: pd.Series,
    window: int = RV_WINDOW,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> pd.Series:
    """Trailing annualized realized volatility.

    RV_t = std(r_{t-window+1} .. r_t) * sqrt(periods_per_year)

    The first ``window - 1`` values (plus any leading NaN returns) are NaN.
    """
    if window < 2:
        raise ValueError("window must be at least 2.")
    rv = returns.rolling(window, min_periods=window).std() * np.sqrt(periods_per_year)
    rv.name = f"rv_{window}d"
    return rv


def forward_realized_volatility(
    returns: pd.Series,
    window: int = RV_WINDOW,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> pd.Series:
    """Realized volatility over t+1 .. t+window, aligned at t (forecast target)."""
    fwd = realized_volatility(returns, window, periods_per_year).shift(-window)
    fwd.name = f"fwd_rv_{window}d"
    return fwd


def implied_vol_to_decimal(
    levels: pd.Series, points_per_unit: float = VOL_INDEX_POINTS_PER_UNIT
) -> pd.Series:
    """VIX-style index points (18.5) -> decimal volatility (0.185)."""
    return levels / points_per_unit


def build_dataset(
    predictor: pd.Series,
    response: pd.Series,
    exog: pd.DataFrame | Mapping[str, pd.Series] | None = None,
) -> pd.DataFrame:
    """Join predictor, response and optional exogenous columns by date.

    Rows with any missing value are dropped; the result is sorted by date.
    Raises ValueError on duplicate dates, negative predictor/response values
    or an empty result.
    """
    parts = {PREDICTOR: predictor, RESPONSE: response}
    if exog is not None:
        exog_frame = pd.DataFrame(exog)
        clash = {PREDICTOR, RESPONSE} & set(exog_frame.columns)
        if clash:
            raise ValueError(f"exog columns clash with reserved names: {sorted(clash)}")
        parts.update({str(c): exog_frame[c] for c in exog_frame.columns})

    for name, series in parts.items():
        if series.index.has_duplicates:
            raise ValueError(f"Duplicate dates in series {name!r}.")

    frame = pd.concat(parts, axis=1, join="inner")
    n_joined = len(frame)
    frame = frame.dropna().sort_index()
    frame.index = pd.DatetimeIndex(frame.index, name="date")

    if frame.empty:
        raise ValueError("Dataset is empty after joining and dropping missing values.")
    if (frame[[PREDICTOR, RESPONSE]] < 0).to_numpy().any():
        raise ValueError("predictor and response must be non-negative.")

    logger.debug(
        "Built dataset: %s rows (%s dropped as missing), %s -> %s",
        len(frame),
        n_joined - len(frame),
        frame.index[0].date(),
        frame.index[-1].date(),
    )
    return frame


def build_vix_rv_dataset(
    closes: pd.DataFrame,
    *,
    index_ticker: str = "SPX",
    vol_index_ticker: str = "VIX",
    window: int = RV_WINDOW,
    forward: bool = False,
    exog_tickers: list[str] | None = None,
) -> pd.DataFrame:
    """Dataset with predictor = realized vol of ``index_ticker``, response = vol index.

    ``forward=True`` uses the forward-looking RV (t+1 .. t+window) as predictor,
    i.e. it asks how well today's implied vol lines up with the realized vol
    that follows. ``exog_tickers`` adds further vol indices (as decimals) as
    extra columns, e.g. the VIX3M / VIX1Y term-structure points.
    """
    for col in [index_ticker, vol_index_ticker, *(exog_tickers or [])]:
        if col not in closes.columns:
            raise ValueError(f"closes has no column {col!r}")

    rets = log_returns(closes[index_ticker])
    if forward:
        rv = forward_realized_volatility(rets, window)
    else:
        rv = realized_volatility(rets, window)

    exog = None
    if exog_tickers:
        exog = {t.lower(): implied_vol_to_decimal(closes[t]) for t in exog_tickers}

    return build_dataset(rv, implied_vol_to_decimal(closes[vol_index_ticker]), exog)


def split_holdout(
    dataset: pd.DataFrame, start: str | pd.Timestamp
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Split into (rows before ``start``, rows from ``start``)."""
    cutoff = pd.Timestamp(start)
    fit = dataset.loc[dataset.index < cutoff]
    holdout = dataset.loc[dataset.index >= cutoff]
    if fit.empty or holdout.empty:
        raise ValueError(
            f"Hold-out split at {cutoff.date()} leaves an empty side "
            f"({len(fit)} fit rows, {len(holdout)} hold-out rows)."
        )
    return fit, holdout
