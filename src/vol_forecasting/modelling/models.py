"""Model families used to map realized volatility to implied volatility.

Every family is a scikit-learn style regressor (``fit(X, y)`` /
``predict(X)``, cloneable), so the cross-validation driver can treat them
interchangeably. ``make_model`` resolves a ``ModelFamily`` to a fresh
estimator once per fit.

Extrapolation: the kernel and GAM families are local/non-parametric. Outside
the training range of the predictor the kernel family extrapolates its local
linear fit and the GAM family holds the boundary value (inputs are clamped to
the training range). Both give degraded accuracy there but do not fail.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.linear_model import LassoCV, LinearRegression
from sklearn.model_selection import TimeSeriesSplit
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.utils.validation import check_is_fitted
from statsmodels.gam.api import BSplines, GLMGam
from statsmodels.nonparametric.kernel_regression import KernelReg
from statsmodels.tsa.statespace.sarimax import SARIMAX

logger = logging.getLogger(__name__)


def _as_2d(X) -> np.ndarray:
    arr = np.asarray(X, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    return arr


def _as_1d(y) -> np.ndarray:
    return np.asarray(y, dtype=float).ravel()


def _check_varying(X: np.ndarray, family: str) -> None:
    constant = np.flatnonzero(np.ptp(X, axis=0) == 0)
    if constant.size:
        raise ValueError(
            f"{family} regression needs a varying predictor; "
            f"column(s) {constant.tolist()} are constant."
        )


def _date_index(X) -> pd.DatetimeIndex | None:
    if isinstance(X, (pd.DataFrame, pd.Series)) and isinstance(X.index, pd.DatetimeIndex):
        return X.index
    return None


class KernelRegressor(RegressorMixin, BaseEstimator):
    """Nadaraya-Watson / local-linear kernel regression (statsmodels ``KernelReg``).

    The bandwidth defaults to least-squares cross-validation (``"cv_ls"``),
    the library's default selector.
    """

    def __init__(self, reg_type: str = "ll", bw: str | list[float] = "cv_ls"):
        self.reg_type = reg_type
        self.bw = bw

    def fit(self, X, y):
        X_arr, y_arr = _as_2d(X), _as_1d(y)
        _check_varying(X_arr, "kernel")
        self.model_ = KernelReg(
            endog=y_arr,
            exog=X_arr,
            var_type="c" * X_arr.shape[1],
            reg_type=self.reg_type,
            bw=self.bw,
        )
        self.bandwidth_ = np.asarray(self.model_.bw, dtype=float)
        self.n_features_in_ = X_arr.shape[1]
        return self

    def predict(self, X):
        check_is_fitted(self, "model_")
        mean, _ = self.model_.fit(_as_2d(X))
        return np.asarray(mean, dtype=float)


class GAMRegressor(RegressorMixin, BaseEstimator):
    """Gaussian GAM: intercept + one cubic B-spline smooth per predictor column.

    Parameters
    ----------
    df : int
        Basis dimension of each spline.
    degree : int
        Spline degree.
    alpha : float
        Roughness penalty weight applied to every smooth (0 = regression spline).
    """

    def __init__(self, df: int = 6, degree: int = 3, alpha: float = 0.0):
        self.df = df
        self.degree = degree
        self.alpha = alpha

    def fit(self, X, y):
        X_arr, y_arr = _as_2d(X), _as_1d(y)
        _check_varying(X_arr, "gam")
        k = X_arr.shape[1]

        self.lower_ = X_arr.min(axis=0)
        self.upper_ = X_arr.max(axis=0)
        smoother = BSplines(X_arr, df=[self.df] * k, degree=[self.degree] * k)
        model = GLMGam(
            y_arr,
            exog=np.ones((len(y_arr), 1)),
            smoother=smoother,
            alpha=[self.alpha] * k,
        )
        self.results_ = model.fit()
        self.n_features_in_ = k
        return self

    def predict(self, X):
        check_is_fitted(self, "results_")
        X_arr = _as_2d(X)
        clipped = np.clip(X_arr, self.lower_, self.upper_)
        n_clipped = int(np.sum(np.any(clipped != X_arr, axis=1)))
        if n_clipped:
            logger.debug("GAM: %s rows outside the training range were clamped", n_clipped)
        pred = self.results_.predict(exog=np.ones((len(clipped), 1)), exog_smooth=clipped)
        return np.asarray(pred, dtype=float)


class LassoRegressor(RegressorMixin, BaseEstimator):
    """Standardized Lasso whose penalty is picked by time-ordered inner CV.

    ``LassoCV`` is run with a ``TimeSeriesSplit`` over the (date-ordered)
    training rows, so the penalty is never tuned on rows that precede their
    own training data.
    """

    def __init__(self, inner_splits: int = 5, max_iter: int = 10_000):
        self.inner_splits = inner_splits
        self.max_iter = max_iter

    def fit(self, X, y):
        self.pipeline_ = Pipeline(
            [
                ("scaler", StandardScaler()),
                (
                    "model",
                    LassoCV(
                        cv=TimeSeriesSplit(n_splits=self.inner_splits),
                        max_iter=self.max_iter,
                    ),
                ),
            ]
        )
        self.pipeline_.fit(_as_2d(X), _as_1d(y))
        lasso = self.pipeline_.named_steps["model"]
        self.alpha_ = float(lasso.alpha_)
        self.coef_ = lasso.coef_
        self.n_features_in_ = len(self.coef_)
        return self

    def predict(self, X):
        check_is_fitted(self, "pipeline_")
        return self.pipeline_.predict(_as_2d(X))


class SarimaxRegressor(RegressorMixin, BaseEstimator):
    """Seasonal ARIMA on the response with a linear exogenous contribution.

    The model is fit by maximum likelihood on the training rows taken as one
    consecutive series. For date-indexed inputs, ``predict`` re-applies the
    fitted parameters to the union of training and requested dates with the
    requested responses treated as missing, and returns the one-step-ahead
    predictions at the requested dates; held-out responses are therefore
    never used. Inputs without dates are forecast after the training sample.
    """

    def __init__(
        self,
        order: tuple[int, int, int] = (1, 0, 0),
        seasonal_order: tuple[int, int, int, int] = (0, 0, 0, 0),
        trend: str | None = "c",
        maxiter: int = 200,
    ):
        self.order = order
        self.seasonal_order = seasonal_order
        self.trend = trend
        self.maxiter = maxiter

    def fit(self, X, y):
        X_arr, y_arr = _as_2d(X), _as_1d(y)
        model = SARIMAX(
            y_arr,
            exog=X_arr,
            order=tuple(self.order),
            seasonal_order=tuple(self.seasonal_order),
            trend=self.trend,
        )
        self.results_ = model.fit(disp=False, maxiter=self.maxiter)
        self.train_index_ = _date_index(X)
        self.train_endog_ = y_arr
        self.train_exog_ = X_arr
        self.n_features_in_ = X_arr.shape[1]
        return self

    def predict(self, X):
        check_is_fitted(self, "results_")
        X_arr = _as_2d(X)
        index = _date_index(X)

        if index is None or self.train_index_ is None:
            forecast = self.results_.forecast(steps=len(X_arr), exog=X_arr)
            return np.asarray(forecast, dtype=float)

        exog = pd.concat(
            [
                pd.DataFrame(self.train_exog_, index=self.train_index_),
                pd.DataFrame(X_arr, index=index),
            ]
        )
        exog = exog[~exog.index.duplicated(keep="last")].sort_index()
        # dates not in the training sample come back as NaN (missing observations)
        endog = pd.Series(self.train_endog_, index=self.train_index_).reindex(exog.index)

        applied = self.results_.apply(endog.to_numpy(), exog=exog.to_numpy())
        pred = pd.Series(np.asarray(applied.predict(), dtype=float), index=exog.index)
        return pred.loc[index].to_numpy()


class ModelFamily(str, Enum):
    LINEAR = "linear"
    KERNEL = "kernel"
    GAM = "gam"
    LASSO = "lasso"
    SARIMAX = "sarimax"

    @classmethod
    def parse(cls, value: ModelFamily | str) -> ModelFamily:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(
                f"Unknown model family {value!r}; expected one of: {valid}."
            ) from None


_FACTORIES: dict[ModelFamily, type[BaseEstimator]] = {
    ModelFamily.LINEAR: LinearRegression,
    ModelFamily.KERNEL: KernelRegressor,
    ModelFamily.GAM: GAMRegressor,
    ModelFamily.LASSO: LassoRegressor,
    ModelFamily.SARIMAX: SarimaxRegressor,
}


def make_model(family: ModelFamily | str, **params: Any) -> BaseEstimator:
    """Return an unfitted estimator for ``family`` with ``params`` applied."""
    return _FACTORIES[ModelFamily.parse(family)](**params)
