"""YAML run configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .grids import HyperparameterConfig, expand_grid, regular_grid, sobol_grid
from .metrics import METRICS, Direction
from .models import ModelFamily, make_family
from .preprocessing import parse_steps

SECTIONS = {"data", "split", "folds", "preprocessor", "model", "grid", "metrics", "selection", "n_jobs"}
STRATEGIES = {"best", "one_std_err"}


@dataclass
class WorkflowConfig:
    target: str = "y"
    data_path: str | None = None
    train_fraction: float = 0.75
    seed: int = 42
    split_strata: str | None = None
    k: int = 10
    repeats: int = 1
    fold_strata: str | None = None
    preprocessor: Any = None
    family: str = "linear_reg"
    family_params: dict[str, Any] = field(default_factory=dict)
    grid: dict[str, Any] = field(default_factory=lambda: {"type": "expand", "values": {"penalty": [0.0]}})
    metrics: list[str] = field(default_factory=lambda: ["rmse", "rsq"])
    selection_metric: str = "rmse"
    direction: str | None = None
    strategy: str = "best"
    n_jobs: int = 1

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        unknown = [m for m in self.metrics if m not in METRICS]
        if unknown:
            raise ConfigError(f"unknown metrics {unknown}; known: {sorted(METRICS)}")
        if self.selection_metric not in self.metrics:
            raise ConfigError(f"selection metric {self.selection_metric!r} must be listed in metrics")
        if self.strategy not in STRATEGIES:
            raise ConfigError(f"strategy must be one of {sorted(STRATEGIES)}, got {self.strategy!r}")
        if self.direction is not None and self.direction not in {d.value for d in Direction}:
            raise ConfigError(f"direction must be lower_is_better or higher_is_better, got {self.direction!r}")
        if self.grid.get("type", "expand") not in ("expand", "regular", "sobol"):
            raise ConfigError(f"grid type must be expand, regular or sobol, got {self.grid.get('type')!r}")
        parse_steps(self.preprocessor)

    def build_grid(self) -> list[HyperparameterConfig]:
        spec = dict(self.grid)
        kind = spec.pop("type", "expand")
        try:
            if kind == "expand":
                return expand_grid(spec["values"])
            if kind == "regular":
                return regular_grid(spec["space"], levels=int(spec.get("levels", 5)))
            return sobol_grid(spec["space"], size=int(spec["size"]), seed=int(spec.get("seed", self.seed)))
        except KeyError as exc:
            raise ConfigError(f"grid type {kind!r} needs key {exc.args[0]!r}") from None

    def build_family(self) -> ModelFamily:
        try:
            return make_family(self.family, **self.family_params)
        except TypeError as exc:
            raise ConfigError(f"bad params for model family {self.family!r}: {exc}") from exc

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "WorkflowConfig":
        unknown = set(raw) - SECTIONS
        if unknown:
            raise ConfigError(f"unknown config sections: {sorted(unknown)}")

        data = raw.get("data") or {}
        split_cfg = raw.get("split") or {}
        folds_cfg = raw.get("folds") or {}
        model_cfg = raw.get("model") or {}
        selection_cfg = raw.get("selection") or {}

        kwargs: dict[str, Any] = {
            "target": data.get("target", "y"),
            "data_path": data.get("path"),
            "train_fraction": float(split_cfg.get("train_fraction", 0.75)),
            "seed": int(split_cfg.get("seed", 42)),
            "split_strata": split_cfg.get("strata"),
            "k": int(folds_cfg.get("k", 10)),
            "repeats": int(folds_cfg.get("repeats", 1)),
            "fold_strata": folds_cfg.get("strata"),
            "preprocessor": raw.get("preprocessor"),
            "family": model_cfg.get("family", "linear_reg"),
            "family_params": dict(model_cfg.get("params") or {}),
            "selection_metric": selection_cfg.get("metric", "rmse"),
            "direction": selection_cfg.get("direction"),
            "strategy": selection_cfg.get("strategy", "best"),
            "n_jobs": int(raw.get("n_jobs", 1)),
        }
        if raw.get("grid") is not None:
            kwargs["grid"] = dict(raw["grid"])
        if raw.get("metrics") is not None:
            kwargs["metrics"] = list(raw["metrics"])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(path: str | Path) -> WorkflowConfig:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return WorkflowConfig.from_dict(raw)
