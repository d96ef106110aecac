from __future__ import annotations

import pytest

from cv_select.errors import EmptyGrid, NoMetric
from cv_select.grids import HyperparameterConfig
from cv_select.metrics import Direction
from cv_select.records import MetricRecord
from cv_select.selection import config_stats, select_best, select_by_one_std_err


def _cfg(penalty: float) -> HyperparameterConfig:
    return HyperparameterConfig.from_mapping({"penalty": penalty})


def _records(table: dict[float, list[float]], metric: str = "rmse") -> list[MetricRecord]:
    out: list[MetricRecord] = []
    for penalty, values in table.items():
        for fold_id, value in enumerate(values):
            out.append(MetricRecord(0, fold_id, _cfg(penalty), metric, value))
    return out


def _toy_table() -> dict[float, list[float]]:
    return {
        0.0: [1.0, 2.0, 3.0, 4.0, 5.0],  # mean 3
        0.1: [2.0, 2.0, 2.0, 2.0, 2.0],  # mean 2
        1.0: [4.0, 4.0, 4.0, 4.0, 4.0],  # mean 4
    }


def test_select_best_minimises_lower_is_better_metric() -> None:
    result = select_best(_records(_toy_table()), "rmse", Direction.LOWER_IS_BETTER)

    assert result.best_config == _cfg(0.1)
    assert result.best_mean == pytest.approx(2.0)
    assert result.strategy == "best"
    assert len(result.records) == 15


def test_select_best_maximises_when_higher_is_better() -> None:
    result = select_best(_records(_toy_table(), metric="rsq"), "rsq", "higher_is_better")
    assert result.best_config == _cfg(1.0)


def test_direction_defaults_to_metric_registry() -> None:
    assert select_best(_records(_toy_table()), "rmse").direction == Direction.LOWER_IS_BETTER


def test_tie_goes_to_simplest_config() -> None:
    table = {
        0.5: [2.0, 2.0, 2.0, 2.0, 2.0],
        0.0: [1.0, 2.0, 3.0, 2.0, 2.0],
        0.1: [3.0, 2.0, 1.0, 2.0, 2.0],
        2.0: [9.0, 9.0, 9.0, 9.0, 9.0],
    }
    assert select_best(_records(table), "rmse").best_config == _cfg(0.0)

    del table[0.0]
    assert select_best(_records(table), "rmse").best_config == _cfg(0.1)


def test_config_stats_means_and_std_err() -> None:
    stats = {s.config: s for s in config_stats(_records(_toy_table()), "rmse")}

    assert stats[_cfg(0.0)].mean == pytest.approx(3.0)
    assert stats[_cfg(0.0)].n == 5
    assert stats[_cfg(0.0)].std_err == pytest.approx((2.5 ** 0.5) / (5 ** 0.5))
    assert stats[_cfg(0.1)].std_err == 0.0


def test_incomplete_fold_coverage_is_ineligible() -> None:
    records = _records(_toy_table())
    # drop one fold of the otherwise-best config
    records = [r for r in records if not (r.config == _cfg(0.1) and r.fold_id == 4)]

    result = select_best(records, "rmse")
    assert result.best_config == _cfg(0.0)


def test_no_config_with_full_coverage_raises_empty_grid() -> None:
    records = _records(_toy_table())
    with pytest.raises(EmptyGrid):
        select_best(records, "rmse", folds=[(0, i) for i in range(6)])


def test_empty_records_raise_empty_grid() -> None:
    with pytest.raises(EmptyGrid) as excinfo:
        select_best([], "rmse")
    assert excinfo.value.stage == "select"


def test_missing_metric_raises_no_metric() -> None:
    with pytest.raises(NoMetric):
        select_best(_records(_toy_table()), "mae")


def test_one_std_err_prefers_simpler_config_within_band() -> None:
    table = {
        0.5: [1.0, 1.2, 0.8, 1.1, 0.9],  # best mean 1.0, std_err ~0.0707
        0.0: [1.05, 1.05, 1.05, 1.05, 1.05],
        1.0: [1.5, 1.5, 1.5, 1.5, 1.5],
    }
    records = _records(table)

    assert select_best(records, "rmse").best_config == _cfg(0.5)
    result = select_by_one_std_err(records, "rmse")
    assert result.best_config == _cfg(0.0)
    assert result.strategy == "one_std_err"
    assert result.best_mean == pytest.approx(1.05)


def test_selection_result_serializes_to_primitives() -> None:
    result = select_best(_records(_toy_table()), "rmse")
    assert result.to_dict() == {
        "best_config": {"penalty": 0.1},
        "metric": "rmse",
        "direction": "lower_is_better",
        "strategy": "best",
        "best_mean": pytest.approx(2.0),
    }
    summary = result.summary()
    assert set(summary["metric"]) == {"rmse"}
    assert len(summary) == 3
