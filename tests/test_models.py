from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import Lasso

from cv_select import preprocessing
from cv_select.data import Dataset, make_linear_dataset
from cv_select.errors import ConfigError, NonConvergent, SchemaMismatch
from cv_select.grids import HyperparameterConfig
from cv_select.models import BoostedTreeFamily, LinearRegressionFamily, make_family, train


def _fit(family, params: dict, spec=None):
    data = make_linear_dataset(40, noise=0.01, seed=1)
    fitted = preprocessing.fit(data, spec)
    return train(data, fitted, family, HyperparameterConfig.from_mapping(params))


def test_ols_recovers_slope() -> None:
    model = _fit(LinearRegressionFamily(), {"penalty": 0.0})
    coefs = model.coefficients()

    assert coefs["x"] == pytest.approx(2.0, abs=0.01)
    assert coefs["(Intercept)"] == pytest.approx(0.0, abs=0.05)
    assert model.feature_names == ("x",)


def test_lasso_shrinks_toward_zero() -> None:
    ols = _fit(LinearRegressionFamily(), {"penalty": 0.0}).coefficients()["x"]
    lasso = _fit(LinearRegressionFamily(), {"penalty": 1.0}).coefficients()["x"]
    assert 0.0 < lasso < ols


def test_elastic_net_with_mixture() -> None:
    model = _fit(LinearRegressionFamily(), {"penalty": 0.5, "mixture": 0.5})
    assert type(model.params).__name__ == "ElasticNet"


def _correlated_dataset(n: int = 40) -> Dataset:
    rng = np.random.default_rng(3)
    x1 = np.linspace(0.0, 10.0, n)
    x2 = x1 + rng.normal(0.0, 2.0, size=n)
    y = 2.0 * x1 + x2 + rng.normal(0.0, 0.05, size=n)
    return Dataset(pd.DataFrame({"x1": x1, "x2": x2, "y": y}), "y")


@pytest.mark.filterwarnings("ignore::sklearn.exceptions.ConvergenceWarning")
def test_penalized_fit_without_convergence_raises() -> None:
    data = _correlated_dataset()
    fitted = preprocessing.fit(data, None)
    family = LinearRegressionFamily(max_iter=1, tol=1e-12)
    with pytest.raises(NonConvergent) as excinfo:
        train(data, fitted, family, HyperparameterConfig.from_mapping({"penalty": 0.001}))
    assert excinfo.value.stage == "train"


def test_fit_converging_on_last_allowed_iteration_is_kept() -> None:
    data = _correlated_dataset()
    X = data.features.to_numpy(dtype=float)
    y = data.response.to_numpy(dtype=float)
    needed = int(Lasso(alpha=0.01, max_iter=10_000, tol=1e-4).fit(X, y).n_iter_)

    fitted = preprocessing.fit(data, None)
    family = LinearRegressionFamily(max_iter=needed, tol=1e-4)
    model = train(data, fitted, family, HyperparameterConfig.from_mapping({"penalty": 0.01}))

    assert int(model.params.n_iter_) == needed


def test_unknown_hyperparameter_is_rejected() -> None:
    with pytest.raises(ConfigError):
        _fit(LinearRegressionFamily(), {"trees": 10})


def test_non_numeric_predictors_need_encoding() -> None:
    data = Dataset(pd.DataFrame({"kind": ["a", "b", "a", "b"], "y": [1.0, 2.0, 1.0, 2.0]}), "y")
    fitted = preprocessing.fit(data, None)
    with pytest.raises(SchemaMismatch):
        train(data, fitted, LinearRegressionFamily(), HyperparameterConfig.from_mapping({}))

    encoded = preprocessing.fit(data, {"one_hot": ["kind"]})
    model = train(data, encoded, LinearRegressionFamily(), HyperparameterConfig.from_mapping({}))
    assert model.feature_names == ("kind_a", "kind_b")


def test_boosted_tree_family_predicts() -> None:
    model = _fit(BoostedTreeFamily(random_state=3), {"n_estimators": 20, "max_depth": 2})
    features = pd.DataFrame({"x": [0.0, 5.0, 10.0]})
    preds = model.predict(features)

    assert preds.shape == (3,)
    assert preds[0] < preds[1] < preds[2]
    with pytest.raises(AttributeError):
        model.coefficients()


def test_make_family_lookup() -> None:
    assert isinstance(make_family("linear_reg", max_iter=50), LinearRegressionFamily)
    with pytest.raises(ConfigError):
        make_family("svm")
