"""Scoring fitted models on held-out records."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .data import Dataset
from .models import FittedModel
from .preprocessing import FittedPreprocessor, bake
from .metrics import score_metrics


def predict(fitted_model: FittedModel, fitted_preprocessor: FittedPreprocessor, frame: pd.DataFrame) -> np.ndarray:
    """Predictions on the response's original scale.

    When the response was log-transformed during preprocessing the model
    predicts on the log scale; those predictions are mapped back here.
    """
    baked = bake(fitted_preprocessor, frame)
    raw = fitted_model.predict(baked)
    return fitted_preprocessor.inverse_response(raw)


def evaluate(
    fitted_model: FittedModel,
    fitted_preprocessor: FittedPreprocessor,
    assessment_set: Dataset,
    metrics: Iterable[str],
) -> dict[str, float]:
    """Metric values against the untransformed response of ``assessment_set``."""
    predicted = predict(fitted_model, fitted_preprocessor, assessment_set.frame)
    actual = assessment_set.response.to_numpy(dtype=float)
    return score_metrics(metrics, actual, predicted)
