from __future__ import annotations

import itertools

import pytest

from cv_select.errors import ConfigError
from cv_select.grids import _map_u, expand_grid, regular_grid, sobol_grid

FLOAT_SPACE = {
    "penalty": {"type": "float", "low": 1e-3, "high": 1.0, "log": True},
    "mixture": {"type": "float", "low": 0.1, "high": 1.0},
}


def test_expand_grid_crosses_values() -> None:
    grid = expand_grid({"penalty": [0.0, 1.0], "mixture": [0.5, 1.0]})
    assert len(grid) == 4
    assert {(c["penalty"], c["mixture"]) for c in grid} == set(itertools.product([0.0, 1.0], [0.5, 1.0]))


def test_regular_grid_log_spacing() -> None:
    grid = regular_grid({"penalty": {"type": "float", "low": 1e-4, "high": 1.0, "log": True}}, levels=5)
    values = [c["penalty"] for c in grid]
    assert values == pytest.approx([1e-4, 1e-3, 1e-2, 1e-1, 1.0])


def test_regular_grid_int_levels_are_rounded_and_deduplicated() -> None:
    grid = regular_grid({"depth": {"type": "int", "low": 1, "high": 3}}, levels=5)
    values = [c["depth"] for c in grid]
    assert sorted(values) == [1, 2, 3]
    assert all(isinstance(v, int) for v in values)


def test_regular_grid_rejects_unknown_type() -> None:
    with pytest.raises(ConfigError):
        regular_grid({"penalty": {"type": "normal"}})


def test_sobol_grid_is_deterministic_per_seed() -> None:
    a = sobol_grid(FLOAT_SPACE, size=8, seed=11)
    b = sobol_grid(FLOAT_SPACE, size=8, seed=11)
    c = sobol_grid(FLOAT_SPACE, size=8, seed=12)

    assert [cfg.key for cfg in a] == [cfg.key for cfg in b]
    assert [cfg.key for cfg in a] != [cfg.key for cfg in c]


@pytest.mark.parametrize("size", [1, 5, 8, 13])
def test_sobol_grid_size_and_bounds(size: int) -> None:
    grid = sobol_grid(FLOAT_SPACE, size=size, seed=0)

    assert len(grid) == size
    for cfg in grid:
        assert 1e-3 * (1 - 1e-9) <= cfg["penalty"] <= 1.0
        assert 0.1 <= cfg["mixture"] <= 1.0


def test_sobol_grid_covers_int_and_cat_cells() -> None:
    space = {
        "max_depth": {"type": "int", "low": 1, "high": 4},
        "booster": {"type": "cat", "choices": ["gbtree", "dart"]},
    }
    grid = sobol_grid(space, size=8, seed=3)

    # first 8 Sobol points hit every quarter x half cell exactly once
    pairs = {(cfg["max_depth"], cfg["booster"]) for cfg in grid}
    assert pairs == set(itertools.product([1, 2, 3, 4], ["gbtree", "dart"]))


def test_map_u_int_and_cat_edges() -> None:
    int_spec = {"type": "int", "low": 1, "high": 3}
    assert _map_u(0.0, int_spec) == 1
    assert _map_u(0.5, int_spec) == 2
    assert _map_u(0.999, int_spec) == 3

    cat_spec = {"type": "cat", "choices": ["a", "b"]}
    assert _map_u(0.49, cat_spec) == "a"
    assert _map_u(0.5, cat_spec) == "b"

    with pytest.raises(ConfigError):
        _map_u(0.5, {"type": "normal"})


@pytest.mark.parametrize("size", [0, -1])
def test_sobol_grid_rejects_bad_size(size: int) -> None:
    with pytest.raises(ConfigError):
        sobol_grid(FLOAT_SPACE, size=size, seed=0)
