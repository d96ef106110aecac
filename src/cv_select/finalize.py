"""Refit the chosen config on the full training set and score the test set."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from . import preprocessing
from .data import Dataset
from .evaluation import evaluate
from .grids import HyperparameterConfig
from .models import FittedModel, ModelFamily, train
from .preprocessing import FittedPreprocessor

logger = logging.getLogger(__name__)


def finalize(
    train_set: Dataset,
    test_set: Dataset,
    preprocessor_spec: Any,
    model_family: ModelFamily,
    best_config: HyperparameterConfig,
    metrics: Sequence[str] = ("rmse", "rsq"),
) -> tuple[FittedModel, FittedPreprocessor, dict[str, float]]:
    """Fit on all of ``train_set``; ``test_set`` is read here and nowhere else."""
    fitted = preprocessing.fit(train_set, preprocessor_spec)
    model = train(train_set, fitted, model_family, best_config)
    logger.info("Final fit: %s (%s) on %d records", model_family.name, best_config, len(train_set))

    test_metrics = evaluate(model, fitted, test_set, metrics)
    logger.info(
        "Test set (%d records): %s",
        len(test_set),
        ", ".join(f"{k}={v:.4f}" for k, v in test_metrics.items()),
    )
    return model, fitted, test_metrics
