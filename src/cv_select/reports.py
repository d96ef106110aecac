"""Artifact export: tables, JSON summaries, the final model and tuning plots."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import joblib
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from .workflow import WorkflowResult  # noqa: E402

logger = logging.getLogger(__name__)


def write_json(path: str | os.PathLike[str], obj: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def ensure_dir(path: str | os.PathLike[str]) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def plot_tuning(summary: pd.DataFrame, metric: str, out_path: str | os.PathLike[str], *, best_key: str | None = None) -> None:
    """Mean +/- std_err of ``metric`` per config, in grid order."""
    work = summary[summary["metric"] == metric].reset_index(drop=True)
    labels = work["config"].tolist()
    means = work["mean"].to_numpy(dtype=float)
    errs = work["std_err"].to_numpy(dtype=float)
    x = np.arange(len(labels))

    plt.figure(figsize=(max(6.0, 0.6 * len(labels) + 2), 4.8))
    plt.errorbar(x, means, yerr=errs, fmt="o", capsize=4)
    if best_key is not None and best_key in labels:
        i = labels.index(best_key)
        plt.scatter([x[i]], [means[i]], s=120, facecolors="none", edgecolors="red", label="selected")
        plt.legend(loc="best")
    plt.xticks(x, labels, rotation=45, ha="right", fontsize=8)
    plt.ylabel(metric)
    plt.title(f"Cross-validated {metric} by configuration")
    plt.grid(axis="y", linestyle="--", linewidth=0.5, alpha=0.6)
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()


def write_artifacts(
    result: WorkflowResult,
    output_dir: str | os.PathLike[str],
    *,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Path]:
    out = Path(output_dir)
    ensure_dir(out)

    paths = {
        "metrics": out / "metrics.csv",
        "summary": out / "summary.csv",
        "selection": out / "selection.json",
        "final_metrics": out / "final_metrics.json",
        "model": out / "final_model.joblib",
        "plot": out / f"tuning_{result.selection.metric}.png",
    }

    result.tuning.to_frame().to_csv(paths["metrics"], index=False)
    summary = result.tuning.collect_metrics()
    summary.to_csv(paths["summary"], index=False)

    selection = result.selection.to_dict()
    selection["failures"] = [
        {"repeat": f.repeat_id, "fold": f.fold_id, "config": f.config.as_dict(), "stage": f.stage, "message": f.message}
        for f in result.tuning.failures
    ]
    write_json(paths["selection"], selection)

    final = {
        "test_metrics": result.test_metrics,
        "best_config": result.selection.best_config.as_dict(),
        "n_train": len(result.train),
        "n_test": len(result.test),
    }
    if hasattr(result.final_model.params, "coef_"):
        final["coefficients"] = result.final_model.coefficients()
    write_json(paths["final_metrics"], final)

    joblib.dump(
        {"model": result.final_model, "preprocessor": result.final_preprocessor},
        paths["model"],
    )

    plot_tuning(summary, result.selection.metric, paths["plot"], best_key=result.selection.best_config.key)

    if metadata is not None:
        paths["metadata"] = out / "run_metadata.json"
        write_json(paths["metadata"], metadata)

    for name, path in paths.items():
        logger.info("Wrote %s -> %s", name, path)
    return paths
