"""Named regression metrics and their optimisation direction."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

import numpy as np
from sklearn.metrics import (
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
)

from .errors import NoMetric


class Direction(str, Enum):
    LOWER_IS_BETTER = "lower_is_better"
    HIGHER_IS_BETTER = "higher_is_better"


def _rmse(actual: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(actual, predicted)))


def _rsq(actual: np.ndarray, predicted: np.ndarray) -> float:
    # squared Pearson correlation; undefined for constant inputs
    if np.std(actual) == 0 or np.std(predicted) == 0:
        return float("nan")
    return float(np.corrcoef(actual, predicted)[0, 1] ** 2)


@dataclass(frozen=True)
class Metric:
    name: str
    fn: Callable[[np.ndarray, np.ndarray], float]
    direction: Direction

    def __call__(self, actual: np.ndarray, predicted: np.ndarray) -> float:
        return float(self.fn(np.asarray(actual, dtype=float), np.asarray(predicted, dtype=float)))


METRICS: dict[str, Metric] = {
    m.name: m
    for m in (
        Metric("rmse", _rmse, Direction.LOWER_IS_BETTER),
        Metric("mae", mean_absolute_error, Direction.LOWER_IS_BETTER),
        Metric("mape", mean_absolute_percentage_error, Direction.LOWER_IS_BETTER),
        Metric("rsq", _rsq, Direction.HIGHER_IS_BETTER),
        Metric("rsq_trad", r2_score, Direction.HIGHER_IS_BETTER),
    )
}


def get_metric(name: str) -> Metric:
    try:
        return METRICS[name]
    except KeyError:
        raise NoMetric(f"Unknown metric {name!r}; known: {sorted(METRICS)}", stage="evaluate") from None


def metric_direction(name: str) -> Direction:
    return get_metric(name).direction


def resolve_direction(direction: Direction | str | None, metric_name: str) -> Direction:
    if direction is None:
        return metric_direction(metric_name)
    return Direction(direction)


def score_metrics(names: Iterable[str], actual: np.ndarray, predicted: np.ndarray) -> dict[str, float]:
    return {name: get_metric(name)(actual, predicted) for name in names}
