import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import pandas as pd
from sklearn.base import BaseEstimator

from vol_forecasting.features import RESPONSE

from .cross_validation import CrossValidationResult, cross_validate
from .folds import FoldMode
from .metrics import compute_metrics
from .models import ModelFamily

logger = logging.getLogger(__name__)


def compare_families(
    dataset: pd.DataFrame,
    families: Iterable[ModelFamily | str],
    n_folds: int = 10,
    *,
    mode: FoldMode | str = FoldMode.SHUFFLED,
    seed: int | None = None,
    gap: int = 0,
    max_train_size: int | None = None,
    features: Sequence[str] | None = None,
    model_params: Mapping[str, Mapping[str, Any]] | None = None,
):
    """
    Cross-validate several model families under the same fold scheme.

    With a fixed ``seed`` every family sees the same shuffled folds.

    Returns
    -------
    table : DataFrame
        One row per family (index ``family``) with mean/std/min/max RMSE,
        number of folds and best fold, sorted by mean RMSE.
    results : dict[str -> CrossValidationResult]
    """
    model_params = model_params or {}
    results: dict[str, CrossValidationResult] = {}
    for family in families:
        family = ModelFamily.parse(family)
        results[family.value] = cross_validate(
            dataset,
            family,
            n_folds,
            mode=mode,
            seed=seed,
            gap=gap,
            max_train_size=max_train_size,
            features=features,
            model_params=model_params.get(family.value),
        )

    if not results:
        raise ValueError("families must name at least one model family.")

    table = (
        pd.DataFrame([r.summary() for r in results.values()])
        .set_index("family")
        .sort_values("mean_rmse")
    )
    return table, results


def time_ordering_experiment(
    dataset: pd.DataFrame,
    families: Iterable[ModelFamily | str],
    n_folds: int = 10,
    *,
    seed: int | None = None,
    gap: int = 0,
    max_train_size: int | None = None,
    features: Sequence[str] | None = None,
    model_params: Mapping[str, Mapping[str, Any]] | None = None,
):
    """
    Does time matter? Mean CV RMSE per family with shuffled vs expanding folds.

    A much lower shuffled RMSE means the shuffled folds leak information from
    neighbouring days into training and overstate forecast accuracy.

    Returns
    -------
    table : DataFrame
        Index ``family``, columns ``shuffled``, ``expanding`` and
        ``expanding_minus_shuffled``.
    results : dict[str -> dict[str -> CrossValidationResult]]
        ``results[mode][family]``.
    """
    families = [ModelFamily.parse(f) for f in families]
    results: dict[str, dict[str, CrossValidationResult]] = {}
    for mode in FoldMode:
        _, results[mode.value] = compare_families(
            dataset,
            families,
            n_folds,
            mode=mode,
            seed=seed,
            gap=gap,
            max_train_size=max_train_size,
            features=features,
            model_params=model_params,
        )

    table = pd.DataFrame(
        {
            mode: {fam: res.mean_rmse for fam, res in by_family.items()}
            for mode, by_family in results.items()
        }
    )
    table.index.name = "family"
    table["expanding_minus_shuffled"] = table["expanding"] - table["shuffled"]
    return table, results


def evaluate_holdout(
    models: Mapping[str, BaseEstimator],
    fit_data: pd.DataFrame,
    holdout: pd.DataFrame,
    *,
    features: Sequence[str] | None = None,
    benchmark_column: str | None = None,
):
    """
    Score fitted models on a hold-out sample that lies after the fitting data.

    Parameters
    ----------
    models : dict[str -> fitted estimator]
    fit_data : DataFrame
        Data the models were fit on (only its dates are used, to check that
        the hold-out is strictly later).
    holdout : DataFrame
        Date-indexed frame with ``response`` and the feature columns.
    features : list of str, optional
        Feature columns passed to ``predict``; defaults to every column
        except ``response``.
    benchmark_column : str, optional
        Column used as a naive benchmark forecast for R²_OOS, e.g.
        ``"predictor"`` for "implied vol = realized vol".

    Returns
    -------
    table : DataFrame
        One row per model with RMSE, MAE, R², bias, Durbin-Watson,
        autocorrelation flag and R²_OOS.
    predictions : DataFrame
        ``y_true`` plus one prediction column per model, indexed by date.
    """
    if holdout.empty:
        raise ValueError("holdout is empty.")
    if not fit_data.empty and holdout.index.min() <= fit_data.index.max():
        raise ValueError(
            "holdout must start after the fitting data ends "
            f"({holdout.index.min()} <= {fit_data.index.max()})."
        )
    if features is None:
        features = [c for c in holdout.columns if c != RESPONSE]
    features = list(features)

    y_true = holdout[RESPONSE]
    bench = None if benchmark_column is None else holdout[benchmark_column]

    rows = []
    predictions = pd.DataFrame({"y_true": y_true})
    for name, model in models.items():
        y_pred = pd.Series(model.predict(holdout[features]), index=holdout.index)
        predictions[name] = y_pred

        m = compute_metrics(y_true, y_pred, bench).to_dict()
        m["model"] = name
        rows.append(m)
        logger.info("Hold-out %s: RMSE %.6f, DW %.3f", name, m["rmse"], m["durbin_watson"])

    table = pd.DataFrame(rows).set_index("model")
    return table, predictions
