TRADING_DAYS_PER_YEAR = 252

# ~1 trading month
RV_WINDOW = 21

# Implied-vol indices are quoted in percentage points (e.g. 18.5).
VOL_INDEX_POINTS_PER_UNIT = 100.0

EQUITY_INDEX_TICKER = "SPX"
IMPLIED_VOL_TICKERS = ["VIX", "VIX3M", "VIX1Y"]

# Internal ticker -> yfinance symbol.
YFINANCE_SYMBOLS = {
    "SPX": "^GSPC",
    "SP500TR": "^SP500TR",
    "VIX": "^VIX",
    "VIX9D": "^VIX9D",
    "VIX3M": "^VIX3M",
    "VIX6M": "^VIX6M",
    "VIX1Y": "^VIX1Y",
}
