"""k-fold cross-validated hyperparameter selection and final evaluation."""

from .config import WorkflowConfig, load_config
from .data import Dataset, load_dataset, make_linear_dataset
from .errors import (
    ConfigError,
    CVSelectError,
    EmptyDataset,
    EmptyGrid,
    InvalidFoldCount,
    InvalidFraction,
    NoMetric,
    NonConvergent,
    SchemaMismatch,
    SweepCancelled,
)
from .evaluation import evaluate, predict
from .finalize import finalize
from .grids import HyperparameterConfig, expand_grid, regular_grid, sobol_grid
from .metrics import Direction
from .models import BoostedTreeFamily, FittedModel, LinearRegressionFamily, ModelFamily, train
from .preprocessing import FittedPreprocessor
from .records import MetricRecord
from .selection import SelectionResult, select_best, select_by_one_std_err
from .splitting import Fold, FoldSet, make_folds, split
from .tuning import TuneResult, tune_grid
from .workflow import WorkflowResult, run_workflow

__all__ = [
    "BoostedTreeFamily",
    "CVSelectError",
    "ConfigError",
    "Dataset",
    "Direction",
    "EmptyDataset",
    "EmptyGrid",
    "FittedModel",
    "FittedPreprocessor",
    "Fold",
    "FoldSet",
    "HyperparameterConfig",
    "InvalidFoldCount",
    "InvalidFraction",
    "LinearRegressionFamily",
    "MetricRecord",
    "ModelFamily",
    "NoMetric",
    "NonConvergent",
    "SchemaMismatch",
    "SelectionResult",
    "SweepCancelled",
    "TuneResult",
    "WorkflowConfig",
    "WorkflowResult",
    "evaluate",
    "expand_grid",
    "finalize",
    "load_config",
    "load_dataset",
    "make_folds",
    "make_linear_dataset",
    "predict",
    "regular_grid",
    "run_workflow",
    "select_best",
    "select_by_one_std_err",
    "sobol_grid",
    "split",
    "train",
    "tune_grid",
]
