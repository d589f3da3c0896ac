from __future__ import annotations

from collections.abc import Mapping

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from statsmodels.graphics.tsaplots import plot_acf

from vol_forecasting.features import PREDICTOR, RESPONSE
from vol_forecasting.modelling.cross_validation import CrossValidationResult


def plot_fold_rmse(results: Mapping[str, CrossValidationResult]) -> Figure:
    """Grouped bars of held-out RMSE per fold, one group per family."""
    fig, ax = plt.subplots(figsize=(10, 4))
    n_models = len(results)
    width = 0.8 / max(n_models, 1)

    for i, (name, res) in enumerate(results.items()):
        rmses = res.fold_rmse
        x = np.arange(len(rmses)) + i * width
        ax.bar(x, rmses.to_numpy(), width=width, label=f"{name} (mean {res.mean_rmse:.4f})")
        ax.axhline(res.mean_rmse, color=f"C{i}", linestyle="--", linewidth=1)

    first = next(iter(results.values()), None)
    if first is not None:
        ticks = np.arange(len(first.folds)) + width * (n_models - 1) / 2
        ax.set_xticks(ticks, [str(f.fold) for f in first.folds])
    ax.set_xlabel("Fold")
    ax.set_ylabel("Held-out RMSE")
    ax.set_title("Cross-validated RMSE by fold")
    ax.legend(loc="upper right")
    fig.tight_layout()
    return fig


def plot_fitted_curves(
    dataset: pd.DataFrame,
    models: Mapping[str, object],
    n_points: int = 200,
) -> Figure:
    """Scatter of response vs predictor with each single-feature model's curve.

    Models fit on more than the predictor column cannot be drawn as a curve
    and should not be passed here.
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.scatter(dataset[PREDICTOR], dataset[RESPONSE], s=4, alpha=0.3, color="grey", label="observed")

    grid = np.linspace(dataset[PREDICTOR].min(), dataset[PREDICTOR].max(), n_points)
    grid_frame = pd.DataFrame({PREDICTOR: grid})
    for name, model in models.items():
        ax.plot(grid, model.predict(grid_frame), linewidth=2, label=name)

    ax.set_xlabel("Realized volatility (annualized)")
    ax.set_ylabel("Implied volatility")
    ax.set_title("Fitted implied vs realized volatility")
    ax.legend(loc="upper left")
    fig.tight_layout()
    return fig


def plot_residuals(predictions: pd.DataFrame, title: str = "Residuals over time") -> Figure:
    """Residuals (y_true - y_pred) over time from a predictions frame."""
    resid = predictions["y_true"] - predictions["y_pred"]

    fig, ax = plt.subplots(figsize=(10, 3))
    ax.plot(resid.index, resid.to_numpy(), linewidth=0.8)
    ax.axhline(0.0, color="black", linewidth=1, linestyle="--")
    ax.set_ylabel("Observed - predicted")
    ax.set_title(title)
    if isinstance(resid.index, pd.DatetimeIndex):
        ax.xaxis.set_major_locator(mdates.YearLocator())
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y"))
    fig.tight_layout()
    return fig


def plot_residual_acf(predictions: pd.DataFrame, lags: int = 30) -> Figure:
    """ACF of residuals; slow decay flags a missing temporal structure."""
    resid = (predictions["y_true"] - predictions["y_pred"]).sort_index()
    lags = min(lags, len(resid) - 1)

    fig, ax = plt.subplots(figsize=(8, 3))
    plot_acf(resid.to_numpy(), lags=lags, ax=ax)
    ax.set_title("Residual autocorrelation")
    fig.tight_layout()
    return fig


def plot_cv_splits(cv, dataset: pd.DataFrame) -> Figure:
    """Train vs test rows over time for each fold of a splitter."""
    dates = dataset.index
    fig, ax = plt.subplots(figsize=(10, 3))

    n_folds = 0
    for fold, (tr, te) in enumerate(cv.split(dataset)):
        ax.scatter(dates[tr], np.full(len(tr), fold), marker="s", s=4, c="blue",
                   label="train" if fold == 0 else None)
        ax.scatter(dates[te], np.full(len(te), fold), marker="s", s=10, c="orange",
                   label="test" if fold == 0 else None)
        n_folds += 1

    ax.set_yticks(range(n_folds), [f"Fold {k + 1}" for k in range(n_folds)])
    if isinstance(dates, pd.DatetimeIndex):
        ax.xaxis.set_major_locator(mdates.YearLocator())
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y"))
    ax.set_xlabel("Date")
    ax.set_title(f"{type(cv).__name__} (train vs test over time)")
    ax.legend(loc="upper right")
    fig.tight_layout()
    return fig
