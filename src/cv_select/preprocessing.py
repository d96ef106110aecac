"""Fittable, ordered preprocessing steps.

Steps learn their parameters from the analysis set only (``fit``) and replay
them on any other frame (``apply``). Encoding and scaling therefore happen
*within a fold*, never once up front before resampling.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Mapping, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from .data import Dataset
from .errors import ConfigError, SchemaMismatch


def _require(frame: pd.DataFrame, columns: Iterable[str], where: str) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise SchemaMismatch(f"{where} is missing required columns: {sorted(missing)}")


def _predictors(frame: pd.DataFrame, target: str) -> list[str]:
    return [c for c in frame.columns if c != target]


def _no_target(columns: Sequence[str], target: str, kind: str) -> None:
    if target in columns:
        raise ConfigError(f"{kind} cannot operate on the response column {target!r}", stage="preprocess")


@dataclass(frozen=True)
class LogTransform:
    """``log_base(x + offset)``. May be applied to the response."""

    columns: tuple[str, ...]
    base: float = math.e
    offset: float = 0.0
    kind: ClassVar[str] = "log_transform"

    def _check_domain(self, frame: pd.DataFrame, col: str) -> None:
        values = frame[col].astype(float) + self.offset
        bad = values.index[values <= 0].tolist()
        if bad:
            raise SchemaMismatch(
                f"{self.kind}: {col} + offset must be > 0; offending record ids {bad[:10]}"
                + (f" (+{len(bad) - 10} more)" if len(bad) > 10 else "")
            )

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        _require(frame, self.columns, self.kind)
        for col in self.columns:
            self._check_domain(frame, col)
        return {}

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        cols = [c for c in self.columns if c != target or target in frame.columns]
        _require(frame, cols, self.kind)
        out = frame.copy()
        for col in cols:
            self._check_domain(out, col)
            out[col] = np.log(out[col].astype(float) + self.offset) / np.log(self.base)
        return out

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return np.power(self.base, values) - self.offset


@dataclass(frozen=True)
class Drop:
    columns: tuple[str, ...]
    kind: ClassVar[str] = "drop"

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        _no_target(self.columns, target, self.kind)
        _require(frame, self.columns, self.kind)
        return {}

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        _require(frame, self.columns, self.kind)
        return frame.drop(columns=list(self.columns))


@dataclass(frozen=True)
class Derive:
    """New column from a ``DataFrame.eval`` expression, e.g. ``"area / rooms"``."""

    name: str
    expression: str
    kind: ClassVar[str] = "derive"

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        _no_target([self.name], target, self.kind)
        self.transform(frame, target, {})
        return {}

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        out = frame.copy()
        try:
            out[self.name] = frame.eval(self.expression, engine="python")
        except pd.errors.UndefinedVariableError as exc:
            raise SchemaMismatch(f"derive {self.name!r}: {exc}") from exc
        return out


@dataclass(frozen=True)
class OneHot:
    """Indicator columns ``<col>_<level>`` for the levels seen during fit."""

    columns: tuple[str, ...]
    kind: ClassVar[str] = "one_hot"

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        _no_target(self.columns, target, self.kind)
        _require(frame, self.columns, self.kind)
        levels = {
            col: sorted({str(v) for v in frame[col].dropna().unique()})
            for col in self.columns
        }
        return {"levels": levels}

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        _require(frame, self.columns, self.kind)
        out = frame.drop(columns=list(self.columns))
        for col in self.columns:
            values = frame[col].astype(str)
            for level in learned["levels"][col]:
                # levels unseen during fit encode as all zeros
                out[f"{col}_{level}"] = (values == level).astype(float)
        return out


@dataclass(frozen=True)
class ZeroVariance:
    """Drops predictors that are constant in the analysis set."""

    columns: tuple[str, ...] | None = None
    kind: ClassVar[str] = "zero_variance"

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        cols = list(self.columns) if self.columns is not None else _predictors(frame, target)
        _no_target(cols, target, self.kind)
        _require(frame, cols, self.kind)
        removed = [c for c in cols if frame[c].nunique(dropna=False) <= 1]
        return {"removed": removed}

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        _require(frame, learned["removed"], self.kind)
        return frame.drop(columns=list(learned["removed"]))


@dataclass(frozen=True)
class Normalize:
    """Center and scale with the analysis-set mean and population std."""

    columns: tuple[str, ...] | None = None
    kind: ClassVar[str] = "normalize"

    def fit(self, frame: pd.DataFrame, target: str) -> dict[str, Any]:
        if self.columns is not None:
            cols = list(self.columns)
        else:
            cols = [c for c in _predictors(frame, target) if pd.api.types.is_numeric_dtype(frame[c])]
        _no_target(cols, target, self.kind)
        _require(frame, cols, self.kind)
        if not cols:
            return {"mean": {}, "scale": {}}

        scaler = StandardScaler()
        scaler.fit(frame[cols].to_numpy(dtype=float))
        return {
            "mean": {c: float(m) for c, m in zip(cols, scaler.mean_)},
            "scale": {c: float(s) for c, s in zip(cols, scaler.scale_)},
        }

    def transform(self, frame: pd.DataFrame, target: str, learned: Mapping[str, Any]) -> pd.DataFrame:
        _require(frame, learned["mean"].keys(), self.kind)
        out = frame.copy()
        for col, mean in learned["mean"].items():
            out[col] = (out[col].astype(float) - mean) / learned["scale"][col]
        return out


Step = Union[LogTransform, Drop, Derive, OneHot, ZeroVariance, Normalize]
STEP_TYPES = (LogTransform, Drop, Derive, OneHot, ZeroVariance, Normalize)


def _columns(args: Any) -> tuple[str, ...]:
    if isinstance(args, str):
        return (args,)
    return tuple(str(c) for c in args)


def _make_steps(kind: str, args: Any) -> list[Step]:
    if kind == "log_transform":
        if isinstance(args, Mapping):
            return [
                LogTransform(
                    columns=_columns(args["columns"]),
                    base=float(args.get("base", math.e)),
                    offset=float(args.get("offset", 0.0)),
                )
            ]
        return [LogTransform(columns=_columns(args))]
    if kind == "drop":
        return [Drop(columns=_columns(args))]
    if kind == "derive":
        if not isinstance(args, Mapping):
            raise ConfigError("derive expects a {name: expression} mapping", stage="preprocess")
        return [Derive(name=str(name), expression=str(expr)) for name, expr in args.items()]
    if kind == "one_hot":
        cols = args["columns"] if isinstance(args, Mapping) else args
        return [OneHot(columns=_columns(cols))]
    if kind in ("zero_variance", "normalize"):
        cls = ZeroVariance if kind == "zero_variance" else Normalize
        if isinstance(args, Mapping):
            args = args.get("columns")
        return [cls(columns=None if args is None else _columns(args))]
    raise ConfigError(f"Unknown preprocessing step: {kind}", stage="preprocess")


def parse_steps(spec: Any) -> list[Step]:
    """Normalize a step spec into an ordered list of step objects.

    Accepts ``None``, a step object, an ordered mapping
    (``{"log_transform": ["price"], "one_hot": ["type"]}``), or a list of step
    objects / single-key mappings when a kind repeats.
    """
    if spec is None:
        return []
    if isinstance(spec, STEP_TYPES):
        return [spec]
    if isinstance(spec, Mapping):
        steps: list[Step] = []
        for kind, args in spec.items():
            steps.extend(_make_steps(str(kind), args))
        return steps
    if isinstance(spec, (list, tuple)):
        steps = []
        for entry in spec:
            if isinstance(entry, STEP_TYPES):
                steps.append(entry)
            elif isinstance(entry, Mapping):
                steps.extend(parse_steps(entry))
            else:
                raise ConfigError(f"Cannot parse preprocessing step: {entry!r}", stage="preprocess")
        return steps
    raise ConfigError(f"Cannot parse preprocessing spec: {spec!r}", stage="preprocess")


@dataclass(frozen=True)
class FittedStep:
    step: Step
    learned: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FittedPreprocessor:
    steps: tuple[FittedStep, ...]
    target: str
    input_columns: tuple[str, ...]
    output_columns: tuple[str, ...]
    response_transforms: tuple[LogTransform, ...]
    fitted_on: tuple

    def inverse_response(self, values: np.ndarray) -> np.ndarray:
        """Map response-scale predictions back to the original scale."""
        out = np.asarray(values, dtype=float)
        for transform in reversed(self.response_transforms):
            out = transform.inverse(out)
        return out


def fit(analysis_set: Dataset, spec: Any) -> FittedPreprocessor:
    """Learn every step's parameters from ``analysis_set`` alone."""
    target = analysis_set.target
    frame = analysis_set.frame
    fitted: list[FittedStep] = []
    response_transforms: list[LogTransform] = []

    for step in parse_steps(spec):
        learned = step.fit(frame, target)
        frame = step.transform(frame, target, learned)
        fitted.append(FittedStep(step=step, learned=learned))
        if isinstance(step, LogTransform) and target in step.columns:
            response_transforms.append(step)

    return FittedPreprocessor(
        steps=tuple(fitted),
        target=target,
        input_columns=tuple(_predictors(analysis_set.frame, target)),
        output_columns=tuple(_predictors(frame, target)),
        response_transforms=tuple(response_transforms),
        fitted_on=tuple(analysis_set.ids),
    )


def bake(fitted: FittedPreprocessor, frame: pd.DataFrame) -> pd.DataFrame:
    """Replay fitted steps on a frame; the response column is optional."""
    _require(frame, fitted.input_columns, "input data")
    keep = list(fitted.input_columns)
    if fitted.target in frame.columns:
        keep.append(fitted.target)
    out = frame[keep]
    for fs in fitted.steps:
        out = fs.step.transform(out, fitted.target, fs.learned)
    return out


def apply(fitted: FittedPreprocessor, dataset: Dataset) -> Dataset:
    return dataset.with_frame(bake(fitted, dataset.frame))
