from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from statsmodels.stats.stattools import durbin_watson

# Durbin-Watson values outside this band point to autocorrelated residuals,
# i.e. a temporal model would fit better than a cross-sectional one.
DW_NO_AUTOCORR_BAND = (1.5, 2.5)


@dataclass(frozen=True)
class EvaluationMetrics:
    """Forecast-error summary of one model on one sample."""

    n_obs: int
    rmse: float
    mae: float
    r2: float
    bias: float
    durbin_watson: float
    r2_oos: float | None = None

    @property
    def autocorrelated(self) -> bool:
        low, high = DW_NO_AUTOCORR_BAND
        return not (low <= self.durbin_watson <= high)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["autocorrelated"] = self.autocorrelated
        return out


def r2_oos(y_true, y_pred, y_pred_bench) -> float:
    """
    R^2_OOS(model | bench) = 1 - SSE_model / SSE_bench
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    y_pred_bench = np.asarray(y_pred_bench, dtype=float)

    num = np.sum((y_true - y_pred) ** 2)
    den = np.sum((y_true - y_pred_bench) ** 2)
    return float(1.0 - num / den)


def compute_metrics(y_true, y_pred, y_pred_bench=None) -> EvaluationMetrics:
    """RMSE, MAE, R², mean bias (observed - predicted) and Durbin-Watson of residuals.

    ``y_pred_bench`` adds R²_OOS against a benchmark forecast (e.g. a naive
    "implied vol = realized vol" rule).
    """
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    if y_true.shape != y_pred.shape:
        raise ValueError(
            f"y_true and y_pred lengths differ: {y_true.size} vs {y_pred.size}"
        )
    if y_true.size == 0:
        raise ValueError("Cannot compute metrics on an empty sample.")

    res = y_true - y_pred
    return EvaluationMetrics(
        n_obs=int(y_true.size),
        rmse=float(np.sqrt(mean_squared_error(y_true, y_pred))),
        mae=float(mean_absolute_error(y_true, y_pred)),
        r2=float(r2_score(y_true, y_pred)),
        bias=float(np.mean(res)),
        durbin_watson=float(durbin_watson(res)),
        r2_oos=None if y_pred_bench is None else r2_oos(y_true, y_pred, y_pred_bench),
    )
