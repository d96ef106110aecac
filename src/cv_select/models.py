"""Model families and the trainer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
import pandas as pd
import xgboost as xgb
from sklearn.linear_model import ElasticNet, Lasso, LinearRegression

from .data import Dataset
from .errors import ConfigError, NonConvergent, SchemaMismatch
from .grids import HyperparameterConfig
from .preprocessing import FittedPreprocessor, apply

logger = logging.getLogger(__name__)


class ModelFamily(Protocol):
    name: str

    def fit(self, features: pd.DataFrame, target: pd.Series, config: HyperparameterConfig) -> Any:
        ...

    def predict(self, params: Any, features: pd.DataFrame) -> np.ndarray:
        ...


@dataclass(frozen=True)
class LinearRegressionFamily:
    """OLS when ``penalty`` is 0, otherwise L1 (``mixture`` < 1 gives elastic net).

    ``penalty`` follows the glmnet/sklearn scaling: the L1 term is added to
    ``RSS / (2 n)``.
    """

    max_iter: int = 10_000
    tol: float = 1e-4
    name: str = "linear_reg"

    def fit(self, features: pd.DataFrame, target: pd.Series, config: HyperparameterConfig) -> Any:
        unknown = set(config.as_dict()) - {"penalty", "mixture"}
        if unknown:
            raise ConfigError(f"{self.name} does not accept {sorted(unknown)}", stage="train")

        penalty = float(config.get("penalty", 0.0))
        mixture = float(config.get("mixture", 1.0))
        if penalty < 0:
            raise ConfigError(f"penalty must be >= 0, got {penalty}", stage="train")
        if not 0.0 < mixture <= 1.0:
            raise ConfigError(f"mixture must be in (0, 1], got {mixture}", stage="train")

        X = features.to_numpy(dtype=float)
        y = target.to_numpy(dtype=float)

        if penalty == 0.0:
            return LinearRegression().fit(X, y)

        if mixture == 1.0:
            model = Lasso(alpha=penalty, max_iter=self.max_iter, tol=self.tol)
        else:
            model = ElasticNet(alpha=penalty, l1_ratio=mixture, max_iter=self.max_iter, tol=self.tol)
        model.fit(X, y)

        if int(np.max(model.n_iter_)) >= self.max_iter and not self._gap_closed(model, y):
            raise NonConvergent(
                f"coordinate descent did not converge in {self.max_iter} iterations ({config})"
            )
        return model

    def _gap_closed(self, model: Any, y: np.ndarray) -> bool:
        # Same stopping rule as the solver: dual gap <= tol * ||y - mean(y)||^2 / n.
        centered = y - y.mean()
        threshold = self.tol * float(centered @ centered) / len(y)
        return bool(np.all(np.asarray(model.dual_gap_) <= threshold))

    def predict(self, params: Any, features: pd.DataFrame) -> np.ndarray:
        return np.asarray(params.predict(features.to_numpy(dtype=float)), dtype=float)


@dataclass(frozen=True)
class BoostedTreeFamily:
    """Gradient boosted trees; config keys are passed to ``XGBRegressor``."""

    base_params: dict[str, Any] = field(default_factory=dict)
    random_state: int = 0
    name: str = "boost_tree"

    def _params(self, config: HyperparameterConfig) -> dict[str, Any]:
        params = dict(
            objective="reg:squarederror",
            random_state=self.random_state,
            n_jobs=1,
            verbosity=0,
        )
        params.update(self.base_params)
        params.update(config.as_dict())
        return params

    def fit(self, features: pd.DataFrame, target: pd.Series, config: HyperparameterConfig) -> Any:
        model = xgb.XGBRegressor(**self._params(config))
        model.fit(features.to_numpy(dtype=float), target.to_numpy(dtype=float))
        return model

    def predict(self, params: Any, features: pd.DataFrame) -> np.ndarray:
        return np.asarray(params.predict(features.to_numpy(dtype=float)), dtype=float)


FAMILIES = {
    "linear_reg": LinearRegressionFamily,
    "boost_tree": BoostedTreeFamily,
}


def make_family(name: str, **kwargs: Any) -> ModelFamily:
    try:
        cls = FAMILIES[name]
    except KeyError:
        raise ConfigError(f"Unknown model family {name!r}; known: {sorted(FAMILIES)}", stage="train") from None
    return cls(**kwargs)


@dataclass(frozen=True)
class FittedModel:
    family: ModelFamily
    config: HyperparameterConfig
    params: Any
    feature_names: tuple[str, ...]

    def predict(self, features: pd.DataFrame) -> np.ndarray:
        return self.family.predict(self.params, features[list(self.feature_names)])

    def coefficients(self) -> dict[str, float]:
        """Intercept and per-feature coefficients (linear families only)."""
        if not hasattr(self.params, "coef_"):
            raise AttributeError(f"{self.family.name} has no coefficients")
        out = {"(Intercept)": float(self.params.intercept_)}
        out.update({name: float(c) for name, c in zip(self.feature_names, np.ravel(self.params.coef_))})
        return out


def _numeric_features(baked: Dataset) -> pd.DataFrame:
    features = baked.features
    non_numeric = [c for c in features.columns if not pd.api.types.is_numeric_dtype(features[c])]
    if non_numeric:
        raise SchemaMismatch(
            f"non-numeric predictors after preprocessing: {non_numeric}; add a one_hot step",
            stage="train",
        )
    return features


def train(
    analysis_set: Dataset,
    fitted_preprocessor: FittedPreprocessor,
    model_family: ModelFamily,
    config: HyperparameterConfig,
) -> FittedModel:
    baked = apply(fitted_preprocessor, analysis_set)
    features = _numeric_features(baked)
    params = model_family.fit(features, baked.response, config)
    logger.debug("Trained %s (%s) on %d records", model_family.name, config, len(analysis_set))
    return FittedModel(
        family=model_family,
        config=config,
        params=params,
        feature_names=tuple(str(c) for c in features.columns),
    )
