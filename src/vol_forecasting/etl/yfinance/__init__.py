from .sync import download_daily_prices, resolve_symbol, sync_yfinance_time_series

__all__ = ["download_daily_prices", "resolve_symbol", "sync_yfinance_time_series"]
