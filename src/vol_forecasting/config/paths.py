from pathlib import Path

ROOT = Path(__file__).resolve().parents[3]

DATA_ROOT = ROOT / "data"
DATA_RAW = DATA_ROOT / "raw"
DATA_PROC = DATA_ROOT / "processed"

# ----- yfinance -----
RAW_YFINANCE_TIME_SERIES = DATA_RAW / "yfinance" / "time_series"
PROC_YFINANCE_TIME_SERIES = DATA_PROC / "yfinance" / "time_series"
