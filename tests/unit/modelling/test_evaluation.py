from __future__ import annotations

import pandas as pd
import pytest

from vol_forecasting.modelling import (
    compare_families,
    evaluate_holdout,
    fit_model,
    time_ordering_experiment,
)


def test_compare_families_same_folds_for_every_family(vol_dataset: pd.DataFrame) -> None:
    table, results = compare_families(vol_dataset, ["linear", "gam"], n_folds=4, seed=0)

    assert set(table.index) == {"linear", "gam"}
    assert table.index.name == "family"
    assert table["mean_rmse"].is_monotonic_increasing
    lin, gam = results["linear"], results["gam"]
    for a, b in zip(lin.folds, gam.folds):
        assert a.test_index.equals(b.test_index)


def test_compare_families_passes_model_params(vol_dataset: pd.DataFrame) -> None:
    _, results = compare_families(
        vol_dataset,
        ["gam"],
        n_folds=3,
        seed=0,
        model_params={"gam": {"df": 5}},
    )
    assert results["gam"].model_params == {"df": 5}


def test_compare_families_requires_a_family(vol_dataset: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="at least one model family"):
        compare_families(vol_dataset, [], n_folds=3)


def test_time_ordering_experiment_reports_both_modes(vol_dataset: pd.DataFrame) -> None:
    table, results = time_ordering_experiment(vol_dataset, ["linear"], n_folds=5, seed=1, gap=2)

    assert list(table.columns) == ["shuffled", "expanding", "expanding_minus_shuffled"]
    row = table.loc["linear"]
    assert row["expanding_minus_shuffled"] == pytest.approx(row["expanding"] - row["shuffled"])
    assert len(results["shuffled"]["linear"].folds) == 5
    assert len(results["expanding"]["linear"].folds) == 4


def test_evaluate_holdout_scores_each_model(vol_dataset: pd.DataFrame) -> None:
    fit_data, holdout = vol_dataset.iloc[:45], vol_dataset.iloc[45:]
    models = {"linear": fit_model(fit_data, "linear"), "gam": fit_model(fit_data, "gam")}

    table, preds = evaluate_holdout(models, fit_data, holdout, benchmark_column="predictor")

    assert list(table.index) == ["linear", "gam"]
    assert {"rmse", "mae", "r2", "bias", "durbin_watson", "r2_oos", "autocorrelated"} <= set(
        table.columns
    )
    assert list(preds.columns) == ["y_true", "linear", "gam"]
    assert preds.index.equals(holdout.index)


def test_evaluate_holdout_rejects_overlap(vol_dataset: pd.DataFrame) -> None:
    model = fit_model(vol_dataset, "linear")
    with pytest.raises(ValueError, match="must start after"):
        evaluate_holdout({"linear": model}, vol_dataset, vol_dataset.iloc[-10:])


def test_max_train_size_reaches_every_family(vol_dataset: pd.DataFrame) -> None:
    _, results = compare_families(
        vol_dataset,
        ["linear", "lasso"],
        n_folds=4,
        mode="expanding",
        max_train_size=20,
        model_params={"lasso": {"inner_splits": 3}},
    )
    for res in results.values():
        assert [f.n_train for f in res.folds] == [15, 20, 20]

    _, by_mode = time_ordering_experiment(
        vol_dataset, ["linear"], n_folds=4, seed=0, max_train_size=20
    )
    assert [f.n_train for f in by_mode["expanding"]["linear"].folds] == [15, 20, 20]
    assert [f.n_train for f in by_mode["shuffled"]["linear"].folds] == [45, 45, 45, 45]
