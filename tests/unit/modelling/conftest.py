from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


def make_vol_dataset(n: int = 60, *, seed: int = 0, noise: float = 0.01) -> pd.DataFrame:
    """Business-day dataset with response = 0.05 + 0.8 * predictor + noise."""
    rng = np.random.default_rng(seed)
    index = pd.bdate_range("2020-01-01", periods=n, name="date")
    predictor = 0.15 + 0.05 * np.sin(np.linspace(0, 6, n)) + rng.normal(0, 0.01, n)
    response = 0.05 + 0.8 * predictor + rng.normal(0, noise, n)
    return pd.DataFrame({"predictor": predictor, "response": response}, index=index)


@pytest.fixture
def vol_dataset() -> pd.DataFrame:
    return make_vol_dataset()


@pytest.fixture
def toy_dataset() -> pd.DataFrame:
    index = pd.bdate_range("2021-01-04", periods=4, name="date")
    return pd.DataFrame(
        {"predictor": [0.1, 0.2, 0.3, 0.4], "response": [0.1, 0.2, 0.3, 0.4]},
        index=index,
    )
