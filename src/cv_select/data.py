"""Immutable dataset wrapper and loaders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .errors import EmptyDataset, SchemaMismatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Dataset:
    """Records (rows) keyed by index label plus the name of the response column.

    The frame is copied on construction; every operation returns a new Dataset.
    """

    frame: pd.DataFrame
    target: str

    def __post_init__(self) -> None:
        if self.target not in self.frame.columns:
            raise SchemaMismatch(
                f"response column {self.target!r} not in {list(self.frame.columns)}",
                stage="data",
            )
        if not self.frame.index.is_unique:
            raise ValueError("record ids (index labels) must be unique")
        object.__setattr__(self, "frame", self.frame.copy())

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def ids(self) -> list:
        return self.frame.index.tolist()

    @property
    def columns(self) -> list[str]:
        return [str(c) for c in self.frame.columns]

    @property
    def features(self) -> pd.DataFrame:
        return self.frame.drop(columns=[self.target])

    @property
    def response(self) -> pd.Series:
        return self.frame[self.target].copy()

    def subset(self, ids: Iterable) -> "Dataset":
        return Dataset(self.frame.loc[list(ids)], self.target)

    def with_frame(self, frame: pd.DataFrame) -> "Dataset":
        return Dataset(frame, self.target)


def load_dataset(path: str | Path, target: str, *, columns: list[str] | None = None) -> Dataset:
    """Read a CSV or parquet file into a Dataset with a 0..n-1 record index."""
    path = Path(path)
    if path.suffix in (".parquet", ".pq"):
        frame = pd.read_parquet(path, columns=columns)
    else:
        frame = pd.read_csv(path, usecols=columns)
    frame = frame.reset_index(drop=True)

    if len(frame) == 0:
        raise EmptyDataset(f"{path} has no records", stage="data")

    logger.info("Loaded %s: %d records, %d columns", path, len(frame), frame.shape[1])
    return Dataset(frame, target)


def make_linear_dataset(
    n: int = 20,
    *,
    slope: float = 2.0,
    intercept: float = 0.0,
    noise: float = 0.05,
    x_range: tuple[float, float] = (0.0, 10.0),
    seed: int = 0,
) -> Dataset:
    """Synthetic ``y = slope * x + intercept + N(0, noise)`` records."""
    rng = np.random.default_rng(seed)
    x = np.linspace(x_range[0], x_range[1], n)
    y = slope * x + intercept + rng.normal(0.0, noise, size=n)
    return Dataset(pd.DataFrame({"x": x, "y": y}), "y")
