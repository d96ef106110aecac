"""Error taxonomy for the split / tune / select / finalize workflow."""

from __future__ import annotations


class CVSelectError(ValueError):
    """Base error. ``stage`` names the workflow stage that raised it."""

    stage = "workflow"

    def __init__(self, detail: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        self.detail = detail
        super().__init__(f"[{self.stage}] {detail}")


class InvalidFraction(CVSelectError):
    stage = "split"


class EmptyDataset(CVSelectError):
    stage = "split"


class InvalidFoldCount(CVSelectError):
    stage = "folds"


class SchemaMismatch(CVSelectError):
    stage = "preprocess"


class NonConvergent(CVSelectError):
    stage = "train"


class EmptyGrid(CVSelectError):
    stage = "select"


class NoMetric(CVSelectError):
    stage = "select"


class ConfigError(CVSelectError):
    stage = "config"


class SweepCancelled(CVSelectError):
    """Raised when a sweep is stopped early; ``partial`` holds complete pairs only."""

    stage = "tune"

    def __init__(self, detail: str, *, partial=None) -> None:
        super().__init__(detail)
        self.partial = partial
