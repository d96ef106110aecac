"""Train/test splitting and V-fold cross-validation folds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, StratifiedShuffleSplit

from .data import Dataset
from .errors import ConfigError, EmptyDataset, InvalidFoldCount, InvalidFraction

STRATA_BINS = 4


def _strata_labels(dataset: Dataset, strata: str, stage: str) -> np.ndarray:
    """Class labels for stratification; numeric columns are binned into quartiles."""
    if strata not in dataset.frame.columns:
        raise ConfigError(f"strata column {strata!r} not in {dataset.columns}", stage=stage)
    values = dataset.frame[strata]
    if pd.api.types.is_numeric_dtype(values) and values.nunique() > STRATA_BINS:
        values = pd.qcut(values, q=STRATA_BINS, labels=False, duplicates="drop")
    return values.astype(str).to_numpy()


def _class_counts(labels: np.ndarray) -> dict[str, int]:
    classes, counts = np.unique(labels, return_counts=True)
    return {str(c): int(n) for c, n in zip(classes, counts)}


def _n_train(n_total: int, train_fraction: float) -> int:
    if n_total < 2:
        return n_total
    return min(max(int(round(train_fraction * n_total)), 1), n_total - 1)


def split(
    dataset: Dataset,
    train_fraction: float,
    seed: int,
    *,
    strata: str | None = None,
) -> tuple[Dataset, Dataset]:
    """Seeded partition into ``(train, test)``.

    Both parts keep the original record ids. A one-record dataset goes
    entirely to train.
    """
    if not 0.0 < train_fraction < 1.0:
        raise InvalidFraction(f"train_fraction must be in (0, 1), got {train_fraction}")
    n_total = len(dataset)
    if n_total == 0:
        raise EmptyDataset("cannot split a dataset with zero records")

    n_train = _n_train(n_total, train_fraction)
    ids = np.asarray(dataset.frame.index, dtype=object)

    if strata is not None and n_total >= 2:
        labels = _strata_labels(dataset, strata, "split")
        counts = _class_counts(labels)
        singletons = sorted(c for c, n in counts.items() if n < 2)
        if singletons:
            raise ConfigError(
                f"strata column {strata!r} has classes with a single record: {singletons}",
                stage="split",
            )
        n_test = n_total - n_train
        if min(n_train, n_test) < len(counts):
            raise InvalidFraction(
                f"train_fraction={train_fraction} gives {n_train} train / {n_test} test records, "
                f"fewer than the {len(counts)} classes of strata column {strata!r}"
            )
        splitter = StratifiedShuffleSplit(
            n_splits=1,
            train_size=n_train,
            test_size=n_test,
            random_state=seed,
        )
        tr_idx, te_idx = next(splitter.split(ids, labels))
    else:
        rng = np.random.default_rng(seed)
        order = rng.permutation(n_total)
        tr_idx, te_idx = order[:n_train], order[n_train:]

    tr_idx = np.sort(tr_idx)
    te_idx = np.sort(te_idx)
    return dataset.subset(ids[tr_idx]), dataset.subset(ids[te_idx])


@dataclass(frozen=True)
class Fold:
    repeat_id: int
    fold_id: int
    analysis_ids: tuple
    assessment_ids: tuple
    seed: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.repeat_id, self.fold_id)

    @property
    def label(self) -> str:
        return f"Repeat{self.repeat_id + 1}/Fold{self.fold_id + 1}"


@dataclass(frozen=True)
class FoldSet:
    train: Dataset
    folds: tuple[Fold, ...]
    k: int
    repeats: int
    seed: int

    def __iter__(self) -> Iterator[Fold]:
        return iter(self.folds)

    def __len__(self) -> int:
        return len(self.folds)

    @property
    def keys(self) -> list[tuple[int, int]]:
        return [fold.key for fold in self.folds]

    def analysis(self, fold: Fold) -> Dataset:
        return self.train.subset(fold.analysis_ids)

    def assessment(self, fold: Fold) -> Dataset:
        return self.train.subset(fold.assessment_ids)


def iter_folds(
    train: Dataset,
    *,
    k: int,
    repeats: int,
    seed: int,
    strata: str | None = None,
) -> Iterator[Fold]:
    """Yield folds with repeat metadata; repeat ``r`` is shuffled with ``seed + r``."""
    ids = np.asarray(train.frame.index, dtype=object)
    labels = _strata_labels(train, strata, "folds") if strata is not None else None

    for repeat_id in range(repeats):
        repeat_seed = seed + repeat_id
        if labels is not None:
            splitter = StratifiedKFold(n_splits=k, shuffle=True, random_state=repeat_seed)
            parts = splitter.split(ids, labels)
        else:
            splitter = KFold(n_splits=k, shuffle=True, random_state=repeat_seed)
            parts = splitter.split(ids)
        for fold_id, (analysis_idx, assessment_idx) in enumerate(parts):
            yield Fold(
                repeat_id=repeat_id,
                fold_id=fold_id,
                analysis_ids=tuple(ids[np.sort(analysis_idx)]),
                assessment_ids=tuple(ids[np.sort(assessment_idx)]),
                seed=repeat_seed,
            )


def make_folds(
    train: Dataset,
    k: int,
    seed: int,
    *,
    repeats: int = 1,
    strata: str | None = None,
) -> FoldSet:
    if k < 2 or k > len(train):
        raise InvalidFoldCount(f"k must be in [2, {len(train)}], got {k}")
    if repeats < 1:
        raise InvalidFoldCount(f"repeats must be >= 1, got {repeats}")
    if strata is not None:
        counts = _class_counts(_strata_labels(train, strata, "folds"))
        if k > max(counts.values()):
            raise InvalidFoldCount(
                f"k={k} exceeds the size of every class of strata column {strata!r}: {counts}"
            )

    folds = tuple(iter_folds(train, k=k, repeats=repeats, seed=seed, strata=strata))
    return FoldSet(train=train, folds=folds, k=k, repeats=repeats, seed=seed)
