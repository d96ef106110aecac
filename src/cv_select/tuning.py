"""Grid sweep over (fold x hyperparameter config) pairs."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd
from joblib import Parallel, delayed

from . import preprocessing
from .data import Dataset
from .errors import CVSelectError, EmptyGrid, NonConvergent, SchemaMismatch, SweepCancelled
from .evaluation import evaluate
from .experiment_utils import fmt_secs
from .grids import HyperparameterConfig, as_configs
from .metrics import Direction, get_metric
from .models import ModelFamily, train
from .records import MetricRecord, records_to_frame, summarize_records
from .splitting import Fold, FoldSet

logger = logging.getLogger(__name__)

DEFAULT_METRICS = ("rmse", "rsq")


@dataclass(frozen=True)
class TuneFailure:
    repeat_id: int
    fold_id: int
    config: HyperparameterConfig
    stage: str
    message: str


@dataclass(frozen=True)
class TuneResult:
    fold_keys: tuple[tuple[int, int], ...]
    grid: tuple[HyperparameterConfig, ...]
    metrics: tuple[str, ...]
    records: tuple[MetricRecord, ...]
    failures: tuple[TuneFailure, ...] = ()

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)

    def collect_metrics(self) -> pd.DataFrame:
        return summarize_records(self.records)

    def show_best(self, metric: str, n: int = 5) -> pd.DataFrame:
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric]
        ascending = get_metric(metric).direction == Direction.LOWER_IS_BETTER
        return summary.sort_values("mean", ascending=ascending).head(n).reset_index(drop=True)


_CANCELLED = object()


def _fit_resample(
    train_set: Dataset,
    fold: Fold,
    preprocessor_spec: Any,
    model_family: ModelFamily,
    config: HyperparameterConfig,
    metrics: Sequence[str],
    cancel_event: threading.Event | None,
) -> Any:
    if cancel_event is not None and cancel_event.is_set():
        return _CANCELLED

    analysis = train_set.subset(fold.analysis_ids)
    assessment = train_set.subset(fold.assessment_ids)
    try:
        fitted = preprocessing.fit(analysis, preprocessor_spec)
        model = train(analysis, fitted, model_family, config)
        values = evaluate(model, fitted, assessment, metrics)
    except NonConvergent as exc:
        logger.warning("%s config=%s did not converge: %s", fold.label, config, exc.detail)
        return TuneFailure(fold.repeat_id, fold.fold_id, config, exc.stage, exc.detail)
    except CVSelectError as exc:
        logger.error("Sweep aborted at stage=%s %s config=%s: %s", exc.stage, fold.label, config, exc.detail)
        raise type(exc)(f"{fold.label} config={config.key}: {exc.detail}", stage=exc.stage) from exc
    except Exception as exc:
        logger.error("Sweep aborted %s config=%s: %r", fold.label, config, exc)
        raise CVSelectError(f"{fold.label} config={config.key}: {exc}", stage="tune") from exc

    logger.debug("%s config=%s %s", fold.label, config, values)
    return [
        MetricRecord(fold.repeat_id, fold.fold_id, config, name, float(values[name]))
        for name in metrics
    ]


def tune_grid(
    train_set: Dataset,
    folds: FoldSet,
    preprocessor_spec: Any,
    model_family: ModelFamily,
    grid: Iterable[Mapping[str, Any] | HyperparameterConfig],
    metrics: Sequence[str] = DEFAULT_METRICS,
    *,
    n_jobs: int = 1,
    cancel_event: threading.Event | None = None,
) -> TuneResult:
    """Fit and score every config on every fold.

    ``train_set`` must be the dataset ``folds`` was made from. Each pair fits
    its own preprocessor on the fold's analysis set. Pairs that fail to
    converge are recorded as failures; any other error aborts with the fold
    and config in its message. If
    ``cancel_event`` is set mid-sweep the remaining pairs are skipped and
    :class:`SweepCancelled` carries the records of completed pairs.
    """
    if train_set is not folds.train and not train_set.frame.equals(folds.train.frame):
        raise SchemaMismatch("train_set is not the dataset the folds were made from", stage="tune")
    configs = as_configs(grid)
    if not configs:
        raise EmptyGrid("no hyperparameter configs to evaluate", stage="tune")
    metrics = tuple(metrics)
    for name in metrics:
        get_metric(name)

    n_pairs = len(folds) * len(configs)
    logger.info(
        "Tuning %s: %d folds x %d configs = %d fits (n_jobs=%d)",
        model_family.name,
        len(folds),
        len(configs),
        n_pairs,
        n_jobs,
    )

    t0 = time.time()
    outputs = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_fit_resample)(train_set, fold, preprocessor_spec, model_family, config, metrics, cancel_event)
        for fold in folds
        for config in configs
    )

    records: list[MetricRecord] = []
    failures: list[TuneFailure] = []
    cancelled = 0
    for out in outputs:
        if out is _CANCELLED:
            cancelled += 1
        elif isinstance(out, TuneFailure):
            failures.append(out)
        else:
            records.extend(out)

    result = TuneResult(
        fold_keys=tuple(folds.keys),
        grid=tuple(configs),
        metrics=metrics,
        records=tuple(records),
        failures=tuple(failures),
    )

    if cancelled:
        logger.warning("Sweep cancelled: %d of %d fits skipped", cancelled, n_pairs)
        raise SweepCancelled(f"{cancelled} of {n_pairs} fits skipped", partial=result)

    logger.info(
        "Tuning done in %s: %d records, %d failed fits",
        fmt_secs(time.time() - t0),
        len(records),
        len(failures),
    )
    return result
