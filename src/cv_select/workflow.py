"""End-to-end run: split, folds, sweep, select, final fit."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from .config import WorkflowConfig
from .data import Dataset
from .experiment_utils import fmt_secs
from .finalize import finalize
from .models import FittedModel
from .preprocessing import FittedPreprocessor
from .selection import SELECTORS, SelectionResult
from .splitting import FoldSet, make_folds, split
from .tuning import TuneResult, tune_grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowResult:
    train: Dataset
    test: Dataset
    folds: FoldSet
    tuning: TuneResult
    selection: SelectionResult
    final_model: FittedModel
    final_preprocessor: FittedPreprocessor
    test_metrics: dict[str, float]


def run_workflow(
    dataset: Dataset,
    config: WorkflowConfig,
    *,
    cancel_event: threading.Event | None = None,
) -> WorkflowResult:
    t0 = time.time()

    train_set, test_set = split(dataset, config.train_fraction, config.seed, strata=config.split_strata)
    logger.info("[split] train=%d test=%d (fraction=%.2f)", len(train_set), len(test_set), config.train_fraction)

    folds = make_folds(
        train_set,
        config.k,
        config.seed,
        repeats=config.repeats,
        strata=config.fold_strata,
    )
    logger.info("[folds] %d folds x %d repeats", config.k, config.repeats)

    family = config.build_family()
    tuning = tune_grid(
        train_set,
        folds,
        config.preprocessor,
        family,
        config.build_grid(),
        config.metrics,
        n_jobs=config.n_jobs,
        cancel_event=cancel_event,
    )

    selector = SELECTORS[config.strategy]
    selection = selector(
        tuning.records,
        config.selection_metric,
        config.direction,
        folds=tuning.fold_keys,
    )

    model, fitted, test_metrics = finalize(
        train_set,
        test_set,
        config.preprocessor,
        family,
        selection.best_config,
        config.metrics,
    )
    logger.info("[done] workflow finished in %s", fmt_secs(time.time() - t0))

    return WorkflowResult(
        train=train_set,
        test=test_set,
        folds=folds,
        tuning=tuning,
        selection=selection,
        final_model=model,
        final_preprocessor=fitted,
        test_metrics=test_metrics,
    )
