"""CLI wrapper for a single tuning run."""

from __future__ import annotations

from cv_select.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
