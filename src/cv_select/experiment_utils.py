"""Run bookkeeping: run ids, seeding, logging setup, metadata."""

from __future__ import annotations

import logging
import platform
import random
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] run=%(run_id)s seed=%(seed)s %(message)s"


class _RunContextFilter(logging.Filter):
    def __init__(self, run_id: str, seed: int) -> None:
        super().__init__()
        self.run_id = run_id
        self.seed = seed

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        record.seed = self.seed
        return True


def fmt_secs(s: float) -> str:
    if s < 60:
        return f"{s:.1f}s"
    m = int(s // 60)
    r = s - 60 * m
    return f"{m}m{r:.0f}s"


def generate_run_id(prefix: str = "run") -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:6]}"


def set_global_seed(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)


def configure_logging(
    *,
    run_id: str,
    seed: int,
    log_file: str | Path | None = None,
    level: int = logging.INFO,
    force: bool = False,
    logger_name: str = "cv_select",
) -> logging.Logger:
    """Attach stream (and optional file) handlers tagging every line with run id and seed."""
    logger = logging.getLogger(logger_name)
    if force:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
    elif logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    context = _RunContextFilter(run_id, seed)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def create_run_metadata(*, run_id: str, seed: int, extra: dict[str, Any] | None = None) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "run_id": run_id,
        "seed": seed,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "python": platform.python_version(),
        "platform": platform.platform(),
    }
    if extra:
        metadata.update(extra)
    return metadata
