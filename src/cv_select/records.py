"""Per-fold metric records and their summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np
import pandas as pd

from .grids import HyperparameterConfig

RECORD_COLUMNS = ["repeat", "fold", "config", "metric", "value"]
SUMMARY_COLUMNS = ["config", "metric", "mean", "n", "std_err"]


@dataclass(frozen=True)
class MetricRecord:
    repeat_id: int
    fold_id: int
    config: HyperparameterConfig
    metric: str
    value: float

    @property
    def fold_key(self) -> tuple[int, int]:
        return (self.repeat_id, self.fold_id)

    def to_dict(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "repeat": self.repeat_id,
            "fold": self.fold_id,
            "config": self.config.key,
            "metric": self.metric,
            "value": self.value,
        }
        for name, value in self.config.pairs:
            row.setdefault(name, value)
        return row


def records_to_frame(records: Iterable[MetricRecord]) -> pd.DataFrame:
    rows = [r.to_dict() for r in records]
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    return pd.DataFrame(rows)


def summarize_records(records: Iterable[MetricRecord]) -> pd.DataFrame:
    """Mean, fold count and standard error per (config, metric)."""
    frame = records_to_frame(records)
    if frame.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    summary = (
        frame.groupby(["config", "metric"], as_index=False, sort=True)
        .agg(mean=("value", "mean"), n=("value", "count"), std=("value", "std"))
    )
    summary["std_err"] = (summary["std"] / np.sqrt(summary["n"])).fillna(0.0)
    summary = summary.drop(columns=["std"])

    params = frame.drop(columns=["repeat", "fold", "metric", "value"]).drop_duplicates("config")
    return summary.merge(params, on="config", how="left")
