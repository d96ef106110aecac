from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from cv_select import preprocessing
from cv_select.data import Dataset
from cv_select.errors import NoMetric
from cv_select.evaluation import evaluate, predict
from cv_select.grids import HyperparameterConfig
from cv_select.metrics import Direction, metric_direction, score_metrics
from cv_select.models import LinearRegressionFamily, train


def test_score_metrics_known_values() -> None:
    actual = np.array([1.0, 2.0, 3.0])
    predicted = np.array([1.0, 2.0, 5.0])
    scores = score_metrics(["rmse", "mae", "rsq_trad"], actual, predicted)

    assert scores["rmse"] == pytest.approx(math.sqrt(4.0 / 3.0))
    assert scores["mae"] == pytest.approx(2.0 / 3.0)
    assert scores["rsq_trad"] == pytest.approx(1.0 - 4.0 / 2.0)


def test_rsq_is_squared_correlation() -> None:
    actual = np.array([1.0, 2.0, 3.0, 4.0])
    assert score_metrics(["rsq"], actual, 3.0 * actual + 1.0)["rsq"] == pytest.approx(1.0)
    assert math.isnan(score_metrics(["rsq"], actual, np.ones(4))["rsq"])


def test_metric_directions() -> None:
    assert metric_direction("rmse") == Direction.LOWER_IS_BETTER
    assert metric_direction("rsq") == Direction.HIGHER_IS_BETTER
    with pytest.raises(NoMetric):
        metric_direction("auc")


def _exponential_dataset() -> Dataset:
    x = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    return Dataset(pd.DataFrame({"x": x, "y": 10.0 ** x}), "y")


def test_evaluate_back_transforms_logged_response() -> None:
    data = _exponential_dataset()
    analysis = data.subset([0, 1, 2, 3])
    assessment = data.subset([4, 5])

    fitted = preprocessing.fit(analysis, {"log_transform": {"columns": ["y"], "base": 10}})
    model = train(analysis, fitted, LinearRegressionFamily(), HyperparameterConfig.from_mapping({"penalty": 0.0}))

    preds = predict(model, fitted, assessment.frame)
    assert preds == pytest.approx([1e5, 1e6], rel=1e-6)

    scores = evaluate(model, fitted, assessment, ["rmse", "mae"])
    assert scores["rmse"] == pytest.approx(0.0, abs=1e-3)
    assert scores["mae"] == pytest.approx(0.0, abs=1e-3)


def test_evaluate_is_pure() -> None:
    data = _exponential_dataset()
    fitted = preprocessing.fit(data, {"normalize": None})
    model = train(data, fitted, LinearRegressionFamily(), HyperparameterConfig.from_mapping({}))
    before = data.frame.copy()

    first = evaluate(model, fitted, data, ["rmse"])
    second = evaluate(model, fitted, data, ["rmse"])

    assert first == second
    pd.testing.assert_frame_equal(data.frame, before)
