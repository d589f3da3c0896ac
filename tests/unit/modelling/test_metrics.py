from __future__ import annotations

import numpy as np
import pytest

from vol_forecasting.modelling.metrics import compute_metrics, r2_oos


def test_compute_metrics_alternating_residuals() -> None:
    y_true = np.array([1.0, 2.0, 3.0, 4.0])
    y_pred = y_true - np.array([1.0, -1.0, 1.0, -1.0])

    m = compute_metrics(y_true, y_pred)

    assert m.n_obs == 4
    assert m.rmse == pytest.approx(1.0)
    assert m.mae == pytest.approx(1.0)
    assert m.bias == pytest.approx(0.0)
    assert m.durbin_watson == pytest.approx(3.0)
    assert m.autocorrelated is True
    assert m.r2_oos is None


def test_compute_metrics_with_benchmark() -> None:
    y_true = [0.2, 0.25, 0.3]
    m = compute_metrics(y_true, [0.21, 0.24, 0.31], y_pred_bench=[0.1, 0.1, 0.1])
    assert m.r2_oos is not None and m.r2_oos > 0.9
    assert m.to_dict()["r2_oos"] == m.r2_oos
    assert "autocorrelated" in m.to_dict()


def test_r2_oos_perfect_and_equal_to_benchmark() -> None:
    assert r2_oos([1.0, 2.0, 3.0], [1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 1.0
    assert r2_oos([1.0, 2.0], [0.0, 0.0], [0.0, 0.0]) == 0.0


def test_compute_metrics_validates_inputs() -> None:
    with pytest.raises(ValueError, match="lengths differ"):
        compute_metrics([1.0, 2.0], [1.0])
    with pytest.raises(ValueError, match="empty sample"):
        compute_metrics([], [])
