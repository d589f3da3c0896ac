"""End-to-end VIX vs realized-volatility example on the processed yfinance panel.

This script demonstrates a minimal pipeline:
1) load SPX and VIX closes from the processed parquet,
2) build the (realized vol, implied vol) dataset,
3) cross-validate a few model families with shuffled and expanding folds,
4) refit the best shuffled fold and score it on a later hold-out.

It assumes `vol-forecasting-sync` has already written `data/processed/`.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass

from vol_forecasting.datasets import read_close_panel
from vol_forecasting.features import PREDICTOR, build_vix_rv_dataset, split_holdout
from vol_forecasting.modelling import (
    evaluate_holdout,
    refit_best_fold,
    time_ordering_experiment,
)


@dataclass(frozen=True)
class ExampleConfig:
    """Runtime configuration for the end-to-end example."""

    start: str
    holdout_start: str
    families: tuple[str, ...]
    n_folds: int
    seed: int
    gap: int


def _parse_args() -> ExampleConfig:
    parser = argparse.ArgumentParser(description="Run a minimal VIX vs RV study.")
    parser.add_argument("--start", default="2010-01-01", help="First date to load.")
    parser.add_argument(
        "--holdout-start",
        default="2021-01-01",
        help="First hold-out date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--families",
        nargs="+",
        default=["linear", "gam", "lasso"],
        help="Model families to compare.",
    )
    parser.add_argument("--n-folds", type=int, default=10, help="Number of folds.")
    parser.add_argument("--seed", type=int, default=42, help="Shuffled-fold seed.")
    parser.add_argument(
        "--gap",
        type=int,
        default=21,
        help="Rows purged before each expanding-window test block.",
    )
    args = parser.parse_args()

    return ExampleConfig(
        start=str(args.start),
        holdout_start=str(args.holdout_start),
        families=tuple(args.families),
        n_folds=int(args.n_folds),
        seed=int(args.seed),
        gap=int(args.gap),
    )


def main() -> None:
    cfg = _parse_args()

    closes = read_close_panel(["SPX", "VIX"], start=cfg.start)
    dataset = build_vix_rv_dataset(closes)
    fit_data, holdout = split_holdout(dataset, cfg.holdout_start)

    table, results = time_ordering_experiment(
        fit_data,
        cfg.families,
        cfg.n_folds,
        seed=cfg.seed,
        gap=cfg.gap,
    )
    print(
        f"Dataset: {len(fit_data)} fit rows, {len(holdout)} hold-out rows, "
        f"period={dataset.index.min().date()} to {dataset.index.max().date()}"
    )
    print(table.to_string(float_format="%.5f"))

    models = {
        family: refit_best_fold(res) for family, res in results["shuffled"].items()
    }
    metrics, _ = evaluate_holdout(models, fit_data, holdout, benchmark_column=PREDICTOR)
    print(metrics[["rmse", "mae", "r2_oos", "durbin_watson"]].to_string(float_format="%.5f"))


if __name__ == "__main__":
    main()
