"""Pick a hyperparameter config from per-fold metric records."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import numpy as np
import pandas as pd

from .errors import EmptyGrid, NoMetric
from .grids import HyperparameterConfig
from .metrics import Direction, resolve_direction
from .records import MetricRecord, summarize_records

logger = logging.getLogger(__name__)

TIE_TOL = 1e-12


@dataclass(frozen=True)
class ConfigStats:
    config: HyperparameterConfig
    mean: float
    std_err: float
    n: int


@dataclass(frozen=True)
class SelectionResult:
    best_config: HyperparameterConfig
    metric: str
    direction: Direction
    strategy: str
    best_mean: float
    records: tuple[MetricRecord, ...]

    def summary(self) -> pd.DataFrame:
        out = summarize_records(self.records)
        return out[out["metric"] == self.metric].reset_index(drop=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "best_config": self.best_config.as_dict(),
            "metric": self.metric,
            "direction": self.direction.value,
            "strategy": self.strategy,
            "best_mean": self.best_mean,
        }


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=TIE_TOL, abs_tol=TIE_TOL)


def config_stats(
    metric_records: Iterable[MetricRecord],
    metric_name: str,
    *,
    folds: Iterable[tuple[int, int]] | None = None,
) -> list[ConfigStats]:
    """Per-config mean and standard error over folds.

    Configs missing a fold (e.g. a fit that did not converge) or with a
    non-finite value are left out.
    """
    records = list(metric_records)
    if not records:
        raise EmptyGrid("no metric records to select from")

    relevant = [r for r in records if r.metric == metric_name]
    if not relevant:
        known = sorted({r.metric for r in records})
        raise NoMetric(f"metric {metric_name!r} not in records; found {known}")

    expected = set(folds) if folds is not None else {r.fold_key for r in records}

    by_config: dict[HyperparameterConfig, dict[tuple[int, int], float]] = {}
    for r in relevant:
        values = by_config.setdefault(r.config, {})
        if r.fold_key in values:
            raise ValueError(f"duplicate record for fold={r.fold_key} config={r.config} metric={metric_name}")
        values[r.fold_key] = r.value

    stats: list[ConfigStats] = []
    for config, values in by_config.items():
        if set(values) != expected:
            logger.info("Config %s covers %d/%d folds; ineligible", config, len(values), len(expected))
            continue
        arr = np.array([values[k] for k in sorted(values)], dtype=float)
        if not np.all(np.isfinite(arr)):
            logger.info("Config %s has non-finite %s; ineligible", config, metric_name)
            continue
        n = len(arr)
        std_err = float(np.std(arr, ddof=1) / np.sqrt(n)) if n > 1 else 0.0
        stats.append(ConfigStats(config=config, mean=float(np.mean(arr)), std_err=std_err, n=n))

    if not stats:
        raise EmptyGrid(f"no config has complete fold coverage for {metric_name!r}")
    return stats


def _best(stats: Sequence[ConfigStats], direction: Direction) -> ConfigStats:
    pick = min if direction == Direction.LOWER_IS_BETTER else max
    target = pick(s.mean for s in stats)
    tied = [s for s in stats if _close(s.mean, target)]
    return min(tied, key=lambda s: s.config.simplicity())


def select_best(
    metric_records: Iterable[MetricRecord],
    metric_name: str,
    direction: Direction | str | None = None,
    *,
    folds: Iterable[tuple[int, int]] | None = None,
) -> SelectionResult:
    """Config with the best mean metric; ties go to the simplest config."""
    records = tuple(metric_records)
    direction = resolve_direction(direction, metric_name)
    best = _best(config_stats(records, metric_name, folds=folds), direction)

    logger.info("Selected %s (%s mean=%.6g, %s)", best.config, metric_name, best.mean, direction.value)
    return SelectionResult(
        best_config=best.config,
        metric=metric_name,
        direction=direction,
        strategy="best",
        best_mean=best.mean,
        records=records,
    )


def select_by_one_std_err(
    metric_records: Iterable[MetricRecord],
    metric_name: str,
    direction: Direction | str | None = None,
    *,
    folds: Iterable[tuple[int, int]] | None = None,
) -> SelectionResult:
    """Simplest config whose mean is within one standard error of the best."""
    records = tuple(metric_records)
    direction = resolve_direction(direction, metric_name)
    stats = config_stats(records, metric_name, folds=folds)
    best = _best(stats, direction)

    if direction == Direction.LOWER_IS_BETTER:
        limit = best.mean + best.std_err
        within = [s for s in stats if s.mean <= limit or _close(s.mean, limit)]
    else:
        limit = best.mean - best.std_err
        within = [s for s in stats if s.mean >= limit or _close(s.mean, limit)]
    chosen = min(within, key=lambda s: s.config.simplicity())

    logger.info(
        "Selected %s by one-std-err (%s mean=%.6g, best=%.6g +/- %.3g)",
        chosen.config,
        metric_name,
        chosen.mean,
        best.mean,
        best.std_err,
    )
    return SelectionResult(
        best_config=chosen.config,
        metric=metric_name,
        direction=direction,
        strategy="one_std_err",
        best_mean=chosen.mean,
        records=records,
    )


SELECTORS: dict[str, Callable[..., SelectionResult]] = {
    "best": select_best,
    "one_std_err": select_by_one_std_err,
}
