"""Readers for price/index time series consumed by the feature builder."""

from .csv import read_close_csv
from .yfinance import (
    close_panel_coverage,
    read_close_panel,
    read_yfinance_time_series,
    scan_yfinance_time_series,
    yfinance_time_series_path,
)

__all__ = [
    "close_panel_coverage",
    "read_close_csv",
    "read_close_panel",
    "read_yfinance_time_series",
    "scan_yfinance_time_series",
    "yfinance_time_series_path",
]
