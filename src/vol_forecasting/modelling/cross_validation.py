"""K-fold cross-validation driver for the volatility model families."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.model_selection import BaseCrossValidator

from vol_forecasting.features import RESPONSE

from .errors import ModelFitError
from .folds import FoldMode, make_splitter
from .models import ModelFamily, make_model

logger = logging.getLogger(__name__)


def rmse(residuals) -> float:
    """sqrt(mean(residual^2))."""
    r = np.asarray(residuals, dtype=float)
    return float(np.sqrt(np.mean(r**2)))


@dataclass(frozen=True, eq=False)
class FoldResult:
    """Held-out score of one fold."""

    fold: int
    n_train: int
    n_test: int
    rmse: float
    train_index: pd.Index
    test_index: pd.Index


@dataclass(frozen=True, eq=False)
class CrossValidationResult:
    """Outcome of one cross-validation run.

    ``mean_rmse`` and ``best_training_set`` answer different questions and
    do not describe the same fold: ``mean_rmse`` is the unweighted average of
    every fold's held-out RMSE (use it to compare families), while
    ``best_training_set`` is the training subset of the single fold with the
    lowest RMSE (``best_fold``), kept for refitting and reporting.
    """

    family: ModelFamily
    folds: tuple[FoldResult, ...]
    mean_rmse: float
    best_fold: int
    best_training_set: pd.DataFrame
    predictions: pd.DataFrame
    features: tuple[str, ...]
    model_params: Mapping[str, Any]

    @property
    def fold_rmse(self) -> pd.Series:
        return pd.Series(
            [f.rmse for f in self.folds],
            index=pd.Index([f.fold for f in self.folds], name="fold"),
            name="rmse",
        )

    @property
    def best_fold_rmse(self) -> float:
        return self.fold_rmse.loc[self.best_fold]

    def summary(self) -> dict[str, Any]:
        rmses = self.fold_rmse
        return {
            "family": self.family.value,
            "n_folds": len(self.folds),
            "mean_rmse": self.mean_rmse,
            "std_rmse": float(rmses.std(ddof=0)),
            "min_rmse": float(rmses.min()),
            "max_rmse": float(rmses.max()),
            "best_fold": self.best_fold,
        }


def _resolve_features(dataset: pd.DataFrame, features: Sequence[str] | None) -> list[str]:
    if RESPONSE not in dataset.columns:
        raise ValueError(f"dataset has no {RESPONSE!r} column")
    if features is None:
        features = [c for c in dataset.columns if c != RESPONSE]
    features = list(features)
    if not features:
        raise ValueError("At least one feature column is required.")
    if RESPONSE in features:
        raise ValueError(f"{RESPONSE!r} cannot be used as a feature")
    missing = [c for c in features if c not in dataset.columns]
    if missing:
        raise ValueError(f"dataset is missing feature columns: {missing}")
    return features


def _check_dataset(dataset: pd.DataFrame, features: list[str]) -> None:
    if dataset.empty:
        raise ValueError("Cannot cross-validate an empty dataset.")
    if not dataset.index.is_monotonic_increasing:
        raise ValueError("dataset index must be sorted by date ascending.")
    if dataset[[*features, RESPONSE]].isna().to_numpy().any():
        raise ValueError("dataset contains missing values; drop them before fitting.")


def fit_model(
    dataset: pd.DataFrame,
    family: ModelFamily | str,
    *,
    features: Sequence[str] | None = None,
    model_params: Mapping[str, Any] | None = None,
) -> BaseEstimator:
    """Fit ``family`` on every row of ``dataset`` and return the fitted estimator."""
    family = ModelFamily.parse(family)
    cols = _resolve_features(dataset, features)
    _check_dataset(dataset, cols)

    model = make_model(family, **dict(model_params or {}))
    try:
        model.fit(dataset[cols], dataset[RESPONSE])
    except Exception as exc:
        raise ModelFitError(family.value, None, str(exc)) from exc
    return model


def cross_validate(
    dataset: pd.DataFrame,
    family: ModelFamily | str,
    n_folds: int = 10,
    *,
    mode: FoldMode | str = FoldMode.SHUFFLED,
    seed: int | None = None,
    gap: int = 0,
    max_train_size: int | None = None,
    cv: BaseCrossValidator | None = None,
    features: Sequence[str] | None = None,
    model_params: Mapping[str, Any] | None = None,
) -> CrossValidationResult:
    """Cross-validate one model family and score each held-out fold by RMSE.

    For every fold a fresh model is fit on the training rows, the test rows
    are predicted, and the fold RMSE is sqrt(mean((observed - predicted)^2))
    over exactly the test rows.

    Parameters
    ----------
    dataset : DataFrame
        Date-indexed frame with a ``response`` column and feature columns.
    family : ModelFamily or str
        One of "linear", "kernel", "gam", "lasso", "sarimax".
    n_folds : int, default=10
        Number of folds for the splitter built from ``mode``.
    mode : "shuffled" or "expanding"
        Random balanced folds, or time-ordered expanding-window folds.
    seed : int, optional
        Seed of the shuffled fold assignment.
    gap : int, default=0
        Purge gap (rows) for the expanding mode.
    max_train_size : int, optional
        Cap on training rows per expanding fold (a rolling window).
    cv : BaseCrossValidator, optional
        Explicit splitter; overrides ``n_folds``, ``mode``, ``seed``,
        ``gap`` and ``max_train_size``.
    features : list of str, optional
        Feature columns; defaults to every column except ``response``.
    model_params : mapping, optional
        Keyword arguments for the family's estimator.

    Raises
    ------
    ValueError
        Unknown family or mode, empty or unsorted dataset, fewer rows than
        folds.
    ModelFitError
        A fold's fit or predict failed, or produced non-finite predictions.
    """
    family = ModelFamily.parse(family)
    cols = _resolve_features(dataset, features)
    _check_dataset(dataset, cols)
    params = dict(model_params or {})

    if cv is None:
        if n_folds > len(dataset):
            raise ValueError(
                f"Cannot split {len(dataset)} observations into {n_folds} folds."
            )
        cv = make_splitter(
            mode, n_folds, seed=seed, gap=gap, max_train_size=max_train_size
        )

    X = dataset[cols]
    y = dataset[RESPONSE]

    fold_results: list[FoldResult] = []
    pred_frames: list[pd.DataFrame] = []
    train_sets: dict[int, np.ndarray] = {}

    for fold, (train_idx, test_idx) in enumerate(cv.split(X, y), start=1):
        X_tr, y_tr = X.iloc[train_idx], y.iloc[train_idx]
        X_te, y_te = X.iloc[test_idx], y.iloc[test_idx]

        model = make_model(family, **params)
        try:
            model.fit(X_tr, y_tr)
            y_hat = np.asarray(model.predict(X_te), dtype=float).ravel()
        except Exception as exc:
            raise ModelFitError(family.value, fold, str(exc)) from exc
        if not np.all(np.isfinite(y_hat)):
            raise ModelFitError(family.value, fold, "non-finite predictions")

        score = rmse(y_te.to_numpy() - y_hat)
        logger.debug(
            "%s fold %s: train=%s test=%s rmse=%.6f",
            family.value,
            fold,
            len(train_idx),
            len(test_idx),
            score,
        )

        fold_results.append(
            FoldResult(
                fold=fold,
                n_train=len(train_idx),
                n_test=len(test_idx),
                rmse=score,
                train_index=X_tr.index,
                test_index=X_te.index,
            )
        )
        train_sets[fold] = train_idx
        pred_frames.append(
            pd.DataFrame(
                {"y_true": y_te.to_numpy(), "y_pred": y_hat, "fold": fold},
                index=y_te.index,
            )
        )

    if not fold_results:
        raise ValueError("The splitter produced no folds.")

    scores = np.array([f.rmse for f in fold_results])
    mean_rmse = float(np.mean(scores))
    best = fold_results[int(np.argmin(scores))].fold

    logger.info(
        "%s CV (%s folds): mean RMSE %.6f, best fold %s (RMSE %.6f)",
        family.value,
        len(fold_results),
        mean_rmse,
        best,
        float(scores.min()),
    )

    return CrossValidationResult(
        family=family,
        folds=tuple(fold_results),
        mean_rmse=mean_rmse,
        best_fold=best,
        best_training_set=dataset.iloc[train_sets[best]].copy(),
        predictions=pd.concat(pred_frames).sort_index(),
        features=tuple(cols),
        model_params=params,
    )


def refit_best_fold(result: CrossValidationResult) -> BaseEstimator:
    """Fit the result's family on the training subset of its best fold."""
    return fit_model(
        result.best_training_set,
        result.family,
        features=result.features,
        model_params=result.model_params,
    )

