#!/usr/bin/env python
"""Download the index / vol-index close panel the analysis app reads.

The panel is one equity index (realized-vol side) plus one or more implied-vol
indices. After the download the app reports, per ticker, the date span and
row count that ``read_close_panel`` will see, and the window where every
ticker has data, so that a missing or short series shows up here rather than
as an empty dataset in the analysis step.
"""

from __future__ import annotations

import argparse
import logging
from typing import Any

import pandas as pd

from vol_forecasting.apps._cli import (
    add_dry_run_arg,
    add_print_config_arg,
    collect_logging_overrides,
    ensure_list,
    log_dry_run,
    print_config,
)
from vol_forecasting.cli import (
    DEFAULT_LOGGING,
    add_config_arg,
    add_logging_args,
    build_config,
    resolve_path,
    setup_logging_from_config,
)
from vol_forecasting.config.constants import (
    EQUITY_INDEX_TICKER,
    IMPLIED_VOL_TICKERS,
    TRADING_DAYS_PER_YEAR,
)
from vol_forecasting.config.paths import (
    PROC_YFINANCE_TIME_SERIES,
    RAW_YFINANCE_TIME_SERIES,
)
from vol_forecasting.datasets import close_panel_coverage
from vol_forecasting.etl.yfinance import sync_yfinance_time_series

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": DEFAULT_LOGGING,
    "dry_run": False,
    "paths": {
        "raw_root": RAW_YFINANCE_TIME_SERIES,
        "proc_root": PROC_YFINANCE_TIME_SERIES,
    },
    "panel": {
        "index_ticker": EQUITY_INDEX_TICKER,
        "vol_indices": list(IMPLIED_VOL_TICKERS),
    },
    "start": "2007-01-01",
    "end": None,
    "auto_adjust": False,
    "overwrite": True,
    "report": {
        # tickers with fewer rows are flagged; one trading year by default
        "min_rows": TRADING_DAYS_PER_YEAR,
        "coverage_csv": None,
    },
}


def _clean(ticker: Any) -> str:
    return str(ticker).strip().upper().removeprefix("^")


def panel_tickers(index_ticker: str | None, vol_indices: list[str] | None) -> list[str]:
    """Index ticker followed by the distinct vol indices, validated."""
    index = _clean(index_ticker or "")
    if not index:
        raise ValueError("panel.index_ticker must be set.")

    vols: list[str] = []
    for t in vol_indices or []:
        t = _clean(t)
        if t and t not in vols:
            vols.append(t)
    if not vols:
        raise ValueError("panel.vol_indices must name at least one implied-vol index.")
    if index in vols:
        raise ValueError(
            f"panel.index_ticker {index!r} is also listed as a vol index; "
            "realized and implied volatility need different series."
        )
    return [index, *vols]


def common_window(coverage: pd.DataFrame) -> tuple[pd.Timestamp, pd.Timestamp] | None:
    """Dates where every ticker has data, or None if they do not overlap."""
    if (coverage["n_rows"] == 0).any():
        return None
    start = pd.Timestamp(coverage["first_date"].max())
    end = pd.Timestamp(coverage["last_date"].min())
    if start > end:
        return None
    return start, end


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download the index / vol-index close panel from yfinance."
    )
    add_config_arg(parser)
    add_logging_args(parser)
    add_print_config_arg(parser)
    add_dry_run_arg(parser)

    parser.add_argument("--raw-root", default=None, help="Per-ticker raw parquet directory.")
    parser.add_argument("--proc-root", default=None, help="Processed long parquet directory.")
    parser.add_argument("--index-ticker", default=None, help="Equity index, e.g. SPX.")
    parser.add_argument(
        "--vol-indices",
        nargs="+",
        default=None,
        help="Implied-vol indices, e.g. VIX VIX3M VIX1Y.",
    )
    parser.add_argument("--start", default=None)
    parser.add_argument("--end", default=None)

    parser.add_argument("--auto-adjust", dest="auto_adjust", action="store_true")
    parser.add_argument("--no-auto-adjust", dest="auto_adjust", action="store_false")
    parser.add_argument("--overwrite", dest="overwrite", action="store_true")
    parser.add_argument("--no-overwrite", dest="overwrite", action="store_false")
    parser.set_defaults(auto_adjust=None, overwrite=None)

    parser.add_argument("--min-rows", type=int, default=None)
    parser.add_argument("--coverage-csv", default=None, help="Write the coverage table here.")
    return parser.parse_args(argv)


def _build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    sections: dict[str, dict[str, Any]] = {
        "paths": {"raw_root": args.raw_root, "proc_root": args.proc_root},
        "panel": {"index_ticker": args.index_ticker, "vol_indices": args.vol_indices},
        "report": {"min_rows": args.min_rows, "coverage_csv": args.coverage_csv},
    }
    overrides: dict[str, Any] = {}
    for name, values in sections.items():
        values = {k: v for k, v in values.items() if v is not None}
        if values:
            overrides[name] = values

    for key in ("start", "end", "auto_adjust", "overwrite"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.dry_run:
        overrides["dry_run"] = True

    logging_overrides = collect_logging_overrides(args)
    if logging_overrides:
        overrides["logging"] = logging_overrides
    return overrides


def _report_coverage(
    coverage: pd.DataFrame, min_rows: int, logger: logging.Logger
) -> tuple[pd.Timestamp, pd.Timestamp] | None:
    logger.info("Close-panel coverage:\n%s", coverage.to_string())
    for ticker, row in coverage.iterrows():
        if 0 < row["n_rows"] < min_rows:
            logger.warning("%s has only %s rows (< %s)", ticker, row["n_rows"], min_rows)
        if row["n_missing"]:
            logger.warning("%s has %s missing closes", ticker, row["n_missing"])

    window = common_window(coverage)
    if window is None:
        logger.warning("Tickers do not share a common date window.")
    else:
        logger.info("Common window: %s -> %s", window[0].date(), window[1].date())
    return window


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    config = build_config(DEFAULT_CONFIG, args.config, _build_overrides(args))
    if args.print_config:
        print_config(config)
        return

    setup_logging_from_config(config.get("logging"))
    logger = logging.getLogger(__name__)

    raw_root = resolve_path(config["paths"]["raw_root"])
    proc_root = resolve_path(config["paths"]["proc_root"])
    if raw_root is None or proc_root is None:
        raise ValueError("paths.raw_root and paths.proc_root must be set.")

    panel = config["panel"]
    tickers = panel_tickers(panel.get("index_ticker"), ensure_list(panel.get("vol_indices")))
    report = config["report"]
    coverage_csv = resolve_path(report.get("coverage_csv"))

    logger.info("Index:       %s", tickers[0])
    logger.info("Vol indices: %s", tickers[1:])
    logger.info("Window:      %s -> %s", config.get("start"), config.get("end"))
    logger.info("Output:      raw=%s proc=%s", raw_root, proc_root)

    if config.get("dry_run"):
        log_dry_run(
            logger,
            {
                "action": "sync_close_panel",
                "tickers": tickers,
                "raw_root": raw_root,
                "proc_root": proc_root,
                "start": config.get("start"),
                "end": config.get("end"),
                "auto_adjust": bool(config.get("auto_adjust")),
                "overwrite": bool(config.get("overwrite")),
                "coverage_csv": coverage_csv,
            },
        )
        return

    out_path = sync_yfinance_time_series(
        tickers=tickers,
        raw_root=raw_root,
        proc_root=proc_root,
        start=config.get("start"),
        end=config.get("end"),
        auto_adjust=bool(config.get("auto_adjust", False)),
        overwrite=bool(config.get("overwrite", False)),
    )
    logger.info("Processed file: %s", out_path)

    coverage = close_panel_coverage(tickers, proc_root=proc_root)
    _report_coverage(coverage, int(report.get("min_rows") or 0), logger)
    if coverage_csv is not None:
        coverage_csv.parent.mkdir(parents=True, exist_ok=True)
        coverage.to_csv(coverage_csv)
        logger.info("Coverage table: %s", coverage_csv)

    empty = coverage.index[coverage["n_rows"] == 0].tolist()
    if empty:
        raise RuntimeError(f"No rows synced for: {empty}")


if __name__ == "__main__":
    main()
