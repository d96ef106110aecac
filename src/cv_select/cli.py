"""Command line entry point: ``cv-select CONFIG``."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from .config import load_config
from .data import load_dataset
from .errors import ConfigError, CVSelectError
from .experiment_utils import configure_logging, create_run_metadata, generate_run_id, set_global_seed
from .reports import write_artifacts
from .workflow import run_workflow


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cross-validated hyperparameter selection and final fit")
    parser.add_argument("config", help="Path to YAML config file")
    parser.add_argument("--data", help="Override data.path from the config")
    parser.add_argument("--output-dir", default="results", help="Base output dir")
    parser.add_argument("--seed", type=int, help="Override split.seed")
    parser.add_argument("--n-jobs", type=int, help="Override n_jobs")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)
    if args.seed is not None:
        config.seed = args.seed
    if args.n_jobs is not None:
        config.n_jobs = args.n_jobs
    if args.data is not None:
        config.data_path = args.data

    set_global_seed(config.seed)
    run_id = generate_run_id(prefix="cv-select")
    results_dir = Path(args.output_dir) / run_id
    results_dir.mkdir(parents=True, exist_ok=True)

    logger = configure_logging(
        run_id=run_id,
        seed=config.seed,
        log_file=results_dir / "run.log",
        force=True,
    )

    try:
        if config.data_path is None:
            raise ConfigError("no data path: set data.path in the config or pass --data")
        dataset = load_dataset(config.data_path, config.target)
        result = run_workflow(dataset, config)
    except CVSelectError as exc:
        logger.error("Run failed: %s", exc)
        return 1

    metadata = create_run_metadata(run_id=run_id, seed=config.seed, extra={"config": config.to_dict()})
    write_artifacts(result, results_dir, metadata=metadata)

    logger.info("Results written to %s", results_dir)
    print(json.dumps(result.selection.to_dict(), sort_keys=True))
    print(f"Wrote results to {results_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
