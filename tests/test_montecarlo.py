from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np
import pytest

from core.config import EngineConfig, MonteCarloParams
from core.schema import Goal
from distributions.random_source import NumpyRandomSource, SequenceRandomSource, standard_normal
from engine.montecarlo import MonteCarloSimulator, run_monte_carlo, success_probability
from engine.projection import generate_projection


def small_params(n: int = 200, vol: float = 0.15) -> MonteCarloParams:
    return MonteCarloParams(num_simulations=n, volatility=vol)


def test_seeded_runs_are_identical(short_goal):
    a = run_monte_carlo(short_goal, 1_000, small_params(), random_source=NumpyRandomSource(seed=42))
    b = run_monte_carlo(short_goal, 1_000, small_params(), random_source=NumpyRandomSource(seed=42))
    assert np.array_equal(a.path_values, b.path_values)
    assert a.p50 == b.p50


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_percentile_bands_are_ordered(demo_goal, seed):
    result = run_monte_carlo(demo_goal, 10_000, small_params(500), random_source=NumpyRandomSource(seed=seed))
    for lo, mid, hi in zip(result.p10, result.p50, result.p90):
        assert lo.value <= mid.value <= hi.value


def test_bands_align_with_base_projection(short_goal):
    result = run_monte_carlo(short_goal, 0, small_params(), random_source=NumpyRandomSource(seed=3))
    assert result.path_values.shape == (200, 24)
    for band in (result.p10, result.p50, result.p90):
        assert [p.date for p in band] == [p.date for p in result.base_projection]
        assert [p.cumulative_contributions for p in band] == [
            p.cumulative_contributions for p in result.base_projection
        ]


def test_percentile_index_is_floor_of_level_times_paths(short_goal):
    result = run_monte_carlo(short_goal, 0, small_params(200), random_source=NumpyRandomSource(seed=9))
    final = np.sort(result.path_values[:, -1])
    assert result.p10[-1].value == final[20]
    assert result.p50[-1].value == final[100]
    assert result.p90[-1].value == final[180]


def test_zero_volatility_collapses_bands(short_goal):
    result = run_monte_carlo(short_goal, 0, small_params(50, vol=0.0), random_source=NumpyRandomSource(seed=5))
    assert [p.value for p in result.p10] == [p.value for p in result.p90]


@pytest.mark.parametrize("compounding", ["geometric", "simple"])
def test_zero_volatility_median_is_base_projection(demo_goal, compounding):
    cfg = EngineConfig(compounding=compounding)
    result = run_monte_carlo(
        demo_goal, 10_000, small_params(20, vol=0.0), random_source=NumpyRandomSource(seed=8), config=cfg
    )
    assert [p.value for p in result.p50] == [p.value for p in result.base_projection]
    assert result.base_projection == generate_projection(demo_goal, 10_000, config=cfg)


def test_zero_draws_give_identical_paths(short_goal):
    # u = 1 makes every Box-Muller draw exactly 0
    result = run_monte_carlo(short_goal, 0, small_params(20), random_source=SequenceRandomSource([1.0]))
    assert np.all(result.path_values == result.path_values[0])


def test_invalid_goal_gives_empty_result():
    goal = Goal(amount=1, retirement_year=2050, annual_return=0.05, monthly_deposits=10)
    result = run_monte_carlo(goal, 0, small_params())
    assert result.is_empty
    assert result.simulations == []
    assert result.p10 == [] and result.p50 == [] and result.p90 == []
    assert success_probability(result) == 0.0


def test_simulation_count_is_capped(short_goal, caplog):
    cfg = EngineConfig(max_simulations=50)
    with caplog.at_level(logging.WARNING, logger="engine.montecarlo"):
        result = run_monte_carlo(
            short_goal, 0, small_params(100), random_source=NumpyRandomSource(seed=0), config=cfg
        )
    assert result.n_paths == 50
    assert "capping at 50" in caplog.text


def test_simulations_expose_full_points(short_goal):
    result = run_monte_carlo(short_goal, 2_000, small_params(5), random_source=NumpyRandomSource(seed=11))
    sims = result.simulations
    assert len(sims) == 5
    assert all(len(path) == 24 for path in sims)
    assert [p.value for p in sims[3]] == list(result.path_values[3])
    assert sims[0][0].principal_value == 2_000 + sims[0][0].cumulative_contributions


def test_success_probability_bounds(short_goal):
    easy = replace(short_goal, amount=1)
    hard = replace(short_goal, amount=10_000_000)
    src = NumpyRandomSource(seed=2)
    assert success_probability(run_monte_carlo(easy, 0, small_params(), random_source=src)) == 1.0
    assert success_probability(run_monte_carlo(hard, 0, small_params(), random_source=src)) == 0.0


def test_simulator_class_matches_function(short_goal):
    sim = MonteCarloSimulator(small_params(), seed=42)
    direct = run_monte_carlo(short_goal, 0, small_params(), random_source=NumpyRandomSource(seed=42))
    assert np.array_equal(sim.run(short_goal, 0).path_values, direct.path_values)


def test_to_dataframe_carries_bands(short_goal):
    df = run_monte_carlo(short_goal, 0, small_params(), random_source=NumpyRandomSource(seed=4)).to_dataframe()
    assert {"p10", "p50", "p90"} <= set(df.columns)
    assert (df["p10"] <= df["p90"]).all()


def test_box_muller_draws_are_standard_normal():
    z = standard_normal(NumpyRandomSource(seed=123), 200_000)
    assert abs(z.mean()) < 0.01
    assert abs(z.std() - 1.0) < 0.01


def test_sequence_source_rejects_zero():
    with pytest.raises(ValueError):
        SequenceRandomSource([0.5, 0.0])


def test_params_validation():
    with pytest.raises(ValueError):
        MonteCarloParams(num_simulations=0)
    with pytest.raises(ValueError):
        MonteCarloParams(volatility=-0.1)
