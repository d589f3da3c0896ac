from .cross_validation import (
    CrossValidationResult,
    FoldResult,
    cross_validate,
    fit_model,
    refit_best_fold,
    rmse,
)
from .errors import ModelFitError
from .evaluation import compare_families, evaluate_holdout, time_ordering_experiment
from .folds import (
    ExpandingWindowSplit,
    FoldMode,
    LabelledFolds,
    ShuffledKFold,
    assign_folds,
    make_splitter,
)
from .metrics import EvaluationMetrics, compute_metrics, r2_oos
from .models import (
    GAMRegressor,
    KernelRegressor,
    LassoRegressor,
    ModelFamily,
    SarimaxRegressor,
    make_model,
)

__all__ = [
    "CrossValidationResult", "FoldResult", "cross_validate", "fit_model",
    "refit_best_fold", "rmse", "ModelFitError", "compare_families",
    "evaluate_holdout", "time_ordering_experiment", "ExpandingWindowSplit",
    "FoldMode", "LabelledFolds", "ShuffledKFold", "assign_folds",
    "make_splitter", "EvaluationMetrics", "compute_metrics", "r2_oos",
    "GAMRegressor", "KernelRegressor", "LassoRegressor", "ModelFamily",
    "SarimaxRegressor", "make_model",
]
