"""Write the synthetic ``y = 2x + noise`` dataset to a CSV file."""

from __future__ import annotations

import argparse
from pathlib import Path

from cv_select.data import make_linear_dataset


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a synthetic linear dataset")
    parser.add_argument("--out", default="data/linear.csv", help="Output CSV path")
    parser.add_argument("--n", type=int, default=20)
    parser.add_argument("--noise", type=float, default=0.05)
    parser.add_argument("--seed", type=int, default=0)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    dataset = make_linear_dataset(args.n, noise=args.noise, seed=args.seed)
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    dataset.frame.to_csv(out, index=False)
    print(out)


if __name__ == "__main__":
    main()
