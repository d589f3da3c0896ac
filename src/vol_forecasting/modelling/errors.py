from __future__ import annotations


class ModelFitError(RuntimeError):
    """A model family failed to fit or predict on one cross-validation fold."""

    def __init__(self, family: str, fold: int | None, reason: str):
        self.family = family
        self.fold = fold
        self.reason = reason
        where = "full dataset" if fold is None else f"fold {fold}"
        super().__init__(f"{family} model failed on {where}: {reason}")
