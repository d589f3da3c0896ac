"""Fold partitioners for cross-validating volatility models.

Two families of splitters are offered and the caller picks one per experiment:

- ``ShuffledKFold`` ignores time: labels 1..k are cycled over the rows and
  randomly permuted, so every fold trains on both past and future data.
- ``ExpandingWindowSplit`` respects time: the ordered rows are cut into k
  contiguous blocks and each block (from the second on) is predicted from the
  rows strictly before it, optionally with a purge gap and a capped (rolling)
  training window.

All splitters follow the scikit-learn ``BaseCrossValidator`` protocol and
yield positional ``(train_idx, test_idx)`` arrays.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

import numpy as np
from sklearn.model_selection import BaseCrossValidator


def _check_fold_count(n_samples: int, n_splits: int) -> None:
    if n_splits < 2:
        raise ValueError(f"n_splits must be at least 2, got {n_splits}.")
    if n_samples == 0:
        raise ValueError("Cannot split an empty dataset.")
    if n_splits > n_samples:
        raise ValueError(
            f"Cannot split {n_samples} observations into {n_splits} folds "
            "(need at least one observation per fold)."
        )


def assign_folds(n_samples: int, n_splits: int, seed: int | None = None) -> np.ndarray:
    """Random balanced fold labels in ``[1, n_splits]``.

    Labels are cycled 1..k over the rows and then permuted uniformly at random,
    so every label is used and fold sizes differ by at most one.
    """
    _check_fold_count(n_samples, n_splits)
    labels = np.arange(n_samples) % n_splits + 1
    rng = np.random.default_rng(seed)
    return rng.permutation(labels)


class ShuffledKFold(BaseCrossValidator):
    """K-fold with randomly assigned, balanced (non-contiguous) folds.

    Parameters
    ----------
    n_splits : int, default=10
        Number of folds.
    seed : int or None
        Seed for the label permutation. With ``None`` every call to
        ``split`` draws a fresh assignment.
    """

    def __init__(self, n_splits: int = 10, seed: int | None = None):
        if n_splits < 2:
            raise ValueError(f"n_splits must be at least 2, got {n_splits}.")
        self.n_splits = n_splits
        self.seed = seed

    def get_n_splits(self, X=None, y=None, groups=None):
        return self.n_splits

    def fold_labels(self, X) -> np.ndarray:
        return assign_folds(len(X), self.n_splits, self.seed)

    def split(self, X, y=None, groups=None):
        labels = self.fold_labels(X)
        for label in range(1, self.n_splits + 1):
            yield np.flatnonzero(labels != label), np.flatnonzero(labels == label)


class LabelledFolds(BaseCrossValidator):
    """Splitter driven by explicit per-row fold labels (any hashable, sortable values).

    Folds are produced in sorted label order.
    """

    def __init__(self, labels: Sequence[int]):
        labels = np.asarray(labels)
        if labels.ndim != 1:
            raise ValueError("labels must be one-dimensional.")
        n_unique = len(np.unique(labels))
        if n_unique < 2:
            raise ValueError(f"labels must contain at least 2 distinct folds, got {n_unique}.")
        self.labels = labels

    def get_n_splits(self, X=None, y=None, groups=None):
        return len(np.unique(self.labels))

    def split(self, X, y=None, groups=None):
        if len(X) != len(self.labels):
            raise ValueError(
                f"Got {len(self.labels)} fold labels for {len(X)} observations."
            )
        for label in np.unique(self.labels):
            yield np.flatnonzero(self.labels != label), np.flatnonzero(self.labels == label)


class ExpandingWindowSplit(BaseCrossValidator):
    """Time-ordered splitter: contiguous test blocks, training data strictly earlier.

    The rows (assumed sorted by date, row 0 earliest) are cut into
    ``n_splits`` contiguous blocks of near-equal size, as in an unshuffled
    K-fold. Block ``i`` for ``i >= 1`` is the test set; the training set is
    every row before the block, minus ``gap`` rows right before it. The first
    block is never tested, so ``n_splits - 1`` folds are produced.

    Parameters
    ----------
    n_splits : int, default=10
        Number of contiguous blocks.
    gap : int, default=0
        Rows purged between the end of training and the start of the test
        block. Use the rolling-window length when features or targets look
        back or forward over several days.
    max_train_size : int or None
        Cap on the training window length; turns the expanding window into a
        rolling-origin window.
    """

    def __init__(self, n_splits: int = 10, gap: int = 0, max_train_size: int | None = None):
        if n_splits < 2:
            raise ValueError(f"n_splits must be at least 2, got {n_splits}.")
        if gap < 0:
            raise ValueError("gap must be >= 0.")
        if max_train_size is not None and max_train_size < 1:
            raise ValueError("max_train_size must be >= 1.")
        self.n_splits = n_splits
        self.gap = gap
        self.max_train_size = max_train_size

    def get_n_splits(self, X=None, y=None, groups=None):
        return self.n_splits - 1

    def split(self, X, y=None, groups=None):
        n_samples = len(X)
        _check_fold_count(n_samples, self.n_splits)
        indices = np.arange(n_samples)

        fold_sizes = np.full(self.n_splits, n_samples // self.n_splits, dtype=int)
        fold_sizes[: n_samples % self.n_splits] += 1
        starts = np.concatenate(([0], np.cumsum(fold_sizes)[:-1]))

        for start, size in zip(starts[1:], fold_sizes[1:]):
            train_stop = start - self.gap
            train_start = 0
            if self.max_train_size is not None:
                train_start = max(0, train_stop - self.max_train_size)
            if train_stop <= train_start:
                raise ValueError(
                    f"gap={self.gap} leaves no training data before the test block "
                    f"starting at row {start}."
                )
            yield indices[train_start:train_stop], indices[start : start + size]


class FoldMode(str, Enum):
    SHUFFLED = "shuffled"
    EXPANDING = "expanding"

    @classmethod
    def parse(cls, value: FoldMode | str) -> FoldMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown fold mode {value!r}; expected one of: {valid}.") from None


def make_splitter(
    mode: FoldMode | str,
    n_splits: int = 10,
    *,
    seed: int | None = None,
    gap: int = 0,
    max_train_size: int | None = None,
) -> BaseCrossValidator:
    """Build the splitter for ``mode`` ("shuffled" or "expanding")."""
    mode = FoldMode.parse(mode)
    if mode is FoldMode.SHUFFLED:
        return ShuffledKFold(n_splits=n_splits, seed=seed)
    return ExpandingWindowSplit(n_splits=n_splits, gap=gap, max_train_size=max_train_size)
