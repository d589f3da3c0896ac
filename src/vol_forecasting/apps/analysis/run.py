#!/usr/bin/env python
"""Cross-validate implied-vs-realized volatility models and report the results."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
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
from vol_forecasting.config.constants import EQUITY_INDEX_TICKER, RV_WINDOW
from vol_forecasting.config.paths import PROC_YFINANCE_TIME_SERIES
from vol_forecasting.datasets import read_close_csv, read_close_panel
from vol_forecasting.features import PREDICTOR, build_vix_rv_dataset, split_holdout
from vol_forecasting.modelling import (
    ModelFamily,
    evaluate_holdout,
    fit_model,
    make_splitter,
    time_ordering_experiment,
)
from vol_forecasting.plotting import (
    plot_cv_splits,
    plot_fitted_curves,
    plot_fold_rmse,
    plot_residual_acf,
    plot_residuals,
)

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": DEFAULT_LOGGING,
    "dry_run": False,
    "data": {
        "source": "parquet",  # parquet | csv
        "proc_root": PROC_YFINANCE_TIME_SERIES,
        "csv_path": None,
        "start": "2007-01-01",
        "end": None,
    },
    "dataset": {
        "index_ticker": EQUITY_INDEX_TICKER,
        "vol_index": "VIX",
        "window": RV_WINDOW,
        "forward": False,
        "exog_tickers": [],
    },
    "cv": {
        "n_folds": 10,
        "seed": 42,
        "gap": 0,
        "max_train_size": None,
    },
    "families": [f.value for f in ModelFamily],
    "model_params": {},
    "holdout_start": "2021-01-01",
    "output": {
        "dir": None,
        "plots": True,
    },
}


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cross-validate VIX vs realized-volatility models."
    )
    add_config_arg(parser)
    add_logging_args(parser)
    add_print_config_arg(parser)
    add_dry_run_arg(parser)

    parser.add_argument("--source", choices=["parquet", "csv"], default=None)
    parser.add_argument("--proc-root", type=str, default=None)
    parser.add_argument("--csv-path", type=str, default=None)
    parser.add_argument("--start", type=str, default=None)
    parser.add_argument("--end", type=str, default=None)

    parser.add_argument("--index-ticker", type=str, default=None)
    parser.add_argument("--vol-index", type=str, default=None)
    parser.add_argument("--window", type=int, default=None)
    parser.add_argument("--exog-tickers", nargs="+", default=None)
    parser.add_argument(
        "--forward",
        dest="forward",
        action="store_true",
        help="Use forward realized volatility (t+1..t+window) as predictor.",
    )
    parser.add_argument(
        "--trailing",
        dest="forward",
        action="store_false",
        help="Use trailing realized volatility as predictor.",
    )
    parser.set_defaults(forward=None)

    parser.add_argument("--families", nargs="+", default=None)
    parser.add_argument("--n-folds", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--gap", type=int, default=None)
    parser.add_argument(
        "--max-train-size",
        type=int,
        default=None,
        help="Rolling cap on training rows in the expanding mode.",
    )
    parser.add_argument("--holdout-start", type=str, default=None)
    parser.add_argument("--output-dir", type=str, default=None)
    parser.add_argument(
        "--no-plots",
        dest="plots",
        action="store_false",
        help="Write tables only.",
    )
    parser.set_defaults(plots=None)
    return parser.parse_args(argv)


def _build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    data: dict[str, Any] = {}
    if args.source is not None:
        data["source"] = args.source
    if args.proc_root:
        data["proc_root"] = args.proc_root
    if args.csv_path:
        data["csv_path"] = args.csv_path
    if args.start is not None:
        data["start"] = args.start
    if args.end is not None:
        data["end"] = args.end
    if data:
        overrides["data"] = data

    dataset: dict[str, Any] = {}
    if args.index_ticker is not None:
        dataset["index_ticker"] = args.index_ticker
    if args.vol_index is not None:
        dataset["vol_index"] = args.vol_index
    if args.window is not None:
        dataset["window"] = args.window
    if args.forward is not None:
        dataset["forward"] = args.forward
    if args.exog_tickers is not None:
        dataset["exog_tickers"] = args.exog_tickers
    if dataset:
        overrides["dataset"] = dataset

    cv: dict[str, Any] = {}
    if args.n_folds is not None:
        cv["n_folds"] = args.n_folds
    if args.seed is not None:
        cv["seed"] = args.seed
    if args.gap is not None:
        cv["gap"] = args.gap
    if args.max_train_size is not None:
        cv["max_train_size"] = args.max_train_size
    if cv:
        overrides["cv"] = cv

    if args.families is not None:
        overrides["families"] = args.families
    if args.holdout_start is not None:
        overrides["holdout_start"] = args.holdout_start

    output: dict[str, Any] = {}
    if args.output_dir:
        output["dir"] = args.output_dir
    if args.plots is not None:
        output["plots"] = args.plots
    if output:
        overrides["output"] = output

    if args.dry_run:
        overrides["dry_run"] = True

    logging_overrides = collect_logging_overrides(args)
    if logging_overrides:
        overrides["logging"] = logging_overrides

    return overrides


def _load_closes(data_cfg: dict[str, Any], tickers: list[str]) -> pd.DataFrame:
    source = data_cfg.get("source", "parquet")
    if source == "csv":
        csv_path = resolve_path(data_cfg.get("csv_path"))
        if csv_path is None:
            raise ValueError("data.csv_path must be set when data.source is 'csv'.")
        return read_close_csv(
            csv_path, columns=tickers, start=data_cfg.get("start"), end=data_cfg.get("end")
        )
    if source == "parquet":
        return read_close_panel(
            tickers,
            proc_root=resolve_path(data_cfg["proc_root"]),
            start=data_cfg.get("start"),
            end=data_cfg.get("end"),
        )
    raise ValueError(f"Unknown data.source {source!r}; expected 'parquet' or 'csv'.")


def _save_figure(fig, path: Path, logger: logging.Logger) -> None:
    fig.savefig(path, dpi=120)
    plt.close(fig)
    logger.info("Wrote %s", path)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    config = build_config(DEFAULT_CONFIG, args.config, _build_overrides(args))
    if args.print_config:
        print_config(config)
        return

    setup_logging_from_config(config.get("logging"))
    logger = logging.getLogger(__name__)

    ds_cfg = config["dataset"]
    cv_cfg = config["cv"]
    families = [ModelFamily.parse(f) for f in ensure_list(config.get("families")) or []]
    if not families:
        raise ValueError("families must not be empty.")
    exog_tickers = ensure_list(ds_cfg.get("exog_tickers")) or []
    tickers = [ds_cfg["index_ticker"], ds_cfg["vol_index"], *exog_tickers]
    model_params = config.get("model_params") or {}
    holdout_start = config.get("holdout_start")
    out_dir = resolve_path(config["output"].get("dir"))

    logger.info("Tickers:       %s", tickers)
    logger.info("Families:      %s", [f.value for f in families])
    logger.info(
        "Folds:         %s (seed=%s, gap=%s, max_train_size=%s)",
        cv_cfg["n_folds"],
        cv_cfg["seed"],
        cv_cfg["gap"],
        cv_cfg.get("max_train_size"),
    )
    logger.info("Hold-out from: %s", holdout_start)
    logger.info("Output dir:    %s", out_dir)

    if config.get("dry_run"):
        log_dry_run(
            logger,
            {
                "action": "vix_rv_analysis",
                "data": config["data"],
                "tickers": tickers,
                "families": [f.value for f in families],
                "cv": cv_cfg,
                "holdout_start": holdout_start,
                "output_dir": out_dir,
            },
        )
        return

    closes = _load_closes(config["data"], tickers)
    dataset = build_vix_rv_dataset(
        closes,
        index_ticker=ds_cfg["index_ticker"],
        vol_index_ticker=ds_cfg["vol_index"],
        window=int(ds_cfg["window"]),
        forward=bool(ds_cfg.get("forward", False)),
        exog_tickers=exog_tickers,
    )
    if holdout_start:
        fit_data, holdout = split_holdout(dataset, holdout_start)
    else:
        fit_data, holdout = dataset, None
    logger.info(
        "Dataset: %s rows for fitting, %s hold-out rows",
        len(fit_data),
        0 if holdout is None else len(holdout),
    )

    cv_table, cv_results = time_ordering_experiment(
        fit_data,
        families,
        int(cv_cfg["n_folds"]),
        seed=cv_cfg.get("seed"),
        gap=int(cv_cfg.get("gap", 0)),
        max_train_size=cv_cfg.get("max_train_size"),
        model_params=model_params,
    )
    logger.info("Mean CV RMSE by fold mode:\n%s", cv_table.to_string(float_format="%.6f"))

    holdout_table = None
    holdout_preds = None
    models = {}
    if holdout is not None:
        models = {
            f.value: fit_model(fit_data, f, model_params=model_params.get(f.value))
            for f in families
        }
        holdout_table, holdout_preds = evaluate_holdout(
            models, fit_data, holdout, benchmark_column=PREDICTOR
        )
        logger.info("Hold-out metrics:\n%s", holdout_table.to_string(float_format="%.6f"))

    if out_dir is None:
        return

    out_dir.mkdir(parents=True, exist_ok=True)
    cv_table.to_csv(out_dir / "cv_time_ordering.csv")
    for mode, by_family in cv_results.items():
        folds = pd.concat({fam: res.fold_rmse for fam, res in by_family.items()}, axis=1)
        folds.to_csv(out_dir / f"cv_fold_rmse_{mode}.csv")
    if holdout_table is not None:
        holdout_table.to_csv(out_dir / "holdout_metrics.csv")
        holdout_preds.to_csv(out_dir / "holdout_predictions.csv")
    logger.info("Tables written to %s", out_dir)

    if not config["output"].get("plots", True):
        return

    for mode, by_family in cv_results.items():
        _save_figure(plot_fold_rmse(by_family), out_dir / f"fold_rmse_{mode}.png", logger)
        splitter = make_splitter(
            mode,
            int(cv_cfg["n_folds"]),
            seed=cv_cfg.get("seed"),
            gap=int(cv_cfg.get("gap", 0)),
            max_train_size=cv_cfg.get("max_train_size"),
        )
        _save_figure(plot_cv_splits(splitter, fit_data), out_dir / f"cv_splits_{mode}.png", logger)
    # sarimax needs dates to predict, so it has no curve over the predictor grid
    curve_models = {k: m for k, m in models.items() if k != ModelFamily.SARIMAX.value}
    if not exog_tickers and curve_models:
        _save_figure(plot_fitted_curves(fit_data, curve_models), out_dir / "fitted_curves.png", logger)
    if holdout_preds is not None:
        for name in models:
            preds = holdout_preds[["y_true", name]].rename(columns={name: "y_pred"})
            _save_figure(
                plot_residuals(preds, title=f"Hold-out residuals ({name})"),
                out_dir / f"holdout_residuals_{name}.png",
                logger,
            )
            _save_figure(plot_residual_acf(preds), out_dir / f"holdout_residual_acf_{name}.png", logger)


if __name__ == "__main__":
    main()
