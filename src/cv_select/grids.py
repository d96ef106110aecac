"""Hyperparameter configurations and grid builders."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import numpy as np
from scipy.stats import qmc
from sklearn.model_selection import ParameterGrid

from .errors import ConfigError


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass(frozen=True)
class HyperparameterConfig:
    """Immutable, hashable parameter mapping (e.g. ``{"penalty": 2.07e-4}``)."""

    pairs: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any] | None = None, **kwargs: Any) -> "HyperparameterConfig":
        merged = dict(params or {})
        merged.update(kwargs)
        return cls(tuple(sorted((str(k), _plain(v)) for k, v in merged.items())))

    def as_dict(self) -> dict[str, Any]:
        return dict(self.pairs)

    def get(self, name: str, default: Any = None) -> Any:
        return self.as_dict().get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.as_dict()[name]

    def __contains__(self, name: object) -> bool:
        return name in self.as_dict()

    @property
    def key(self) -> str:
        return json.dumps(self.as_dict(), sort_keys=True)

    def simplicity(self) -> tuple[int, float, str]:
        """Sort key: fewer nonzero numeric values, then smaller magnitude, then key."""
        numeric = [
            abs(float(v))
            for _, v in self.pairs
            if isinstance(v, Real) and not isinstance(v, bool)
        ]
        return (sum(1 for v in numeric if v != 0.0), float(sum(numeric)), self.key)

    def __str__(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self.pairs) or "<default>"


def as_configs(grid: Iterable[Mapping[str, Any] | HyperparameterConfig]) -> list[HyperparameterConfig]:
    out: list[HyperparameterConfig] = []
    seen: set[HyperparameterConfig] = set()
    for entry in grid:
        cfg = entry if isinstance(entry, HyperparameterConfig) else HyperparameterConfig.from_mapping(entry)
        if cfg not in seen:
            seen.add(cfg)
            out.append(cfg)
    return out


def expand_grid(param_grid: Mapping[str, Sequence[Any]]) -> list[HyperparameterConfig]:
    """Full factorial over the listed values."""
    if not param_grid:
        raise ConfigError("param_grid must be non-empty", stage="grid")
    grid = {k: list(v) for k, v in param_grid.items()}
    if any(len(v) == 0 for v in grid.values()):
        raise ConfigError("every parameter needs at least one value", stage="grid")
    return as_configs(ParameterGrid(grid))


def regular_grid(param_space: Dict[str, Dict[str, Any]], levels: int = 5) -> list[HyperparameterConfig]:
    """Evenly spaced levels per parameter, crossed.

    ``{"penalty": {"type": "float", "low": 1e-4, "high": 1.0, "log": True}}``
    spaces penalty levels evenly on log10. ``int`` ranges are rounded and
    de-duplicated; ``cat`` uses every choice.
    """
    if levels < 1:
        raise ConfigError("levels must be >= 1", stage="grid")
    values: dict[str, list[Any]] = {}
    for name, spec in param_space.items():
        t = spec["type"]
        if t == "float":
            lo, hi = float(spec["low"]), float(spec["high"])
            if spec.get("log", False):
                values[name] = [float(v) for v in np.logspace(math.log10(lo), math.log10(hi), levels)]
            else:
                values[name] = [float(v) for v in np.linspace(lo, hi, levels)]
        elif t == "int":
            raw = np.linspace(int(spec["low"]), int(spec["high"]), levels)
            values[name] = sorted({int(round(v)) for v in raw})
        elif t == "cat":
            values[name] = list(spec["choices"])
        else:
            raise ConfigError(f"Unknown param spec type for {name}: {t}", stage="grid")
    return expand_grid(values)


def _map_u(u: float, spec: Dict[str, Any]) -> Any:
    t = spec["type"]
    if t == "float":
        lo, hi = float(spec["low"]), float(spec["high"])
        if spec.get("log", False):
            lo, hi = math.log(lo), math.log(hi)
            return float(math.exp(lo + u * (hi - lo)))
        return float(lo + u * (hi - lo))

    if t == "int":
        lo, hi = int(spec["low"]), int(spec["high"])
        return int(min(lo + math.floor(u * (hi - lo + 1)), hi))

    if t == "cat":
        choices = list(spec["choices"])
        idx = min(int(math.floor(u * len(choices))), len(choices) - 1)
        return choices[idx]

    raise ConfigError(f"Unknown param spec type: {t}", stage="grid")


def sobol_grid(param_space: Dict[str, Dict[str, Any]], size: int, seed: int) -> List[HyperparameterConfig]:
    """Space-filling candidates from a scrambled Sobol sequence."""
    keys = list(param_space.keys())
    if not keys:
        raise ConfigError("param_space must be non-empty for Sobol", stage="grid")
    if size < 1:
        raise ConfigError("size must be >= 1", stage="grid")

    m = int(math.ceil(math.log2(max(size, 1))))
    engine = qmc.Sobol(d=len(keys), scramble=True, seed=seed)
    U = engine.random_base2(m=m)[:size]

    out: List[Dict[str, Any]] = []
    for row in U:
        out.append({k: _map_u(float(u), param_space[k]) for k, u in zip(keys, row)})
    return as_configs(out)
