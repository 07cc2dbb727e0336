from __future__ import annotations

from datetime import date
from math import isclose

import pytest

from core.config import EngineConfig
from core.schema import Goal, projection_to_frame
from core.utils import monthly_rate, round_half_away, round_half_away_array, total_months
from engine.projection import generate_projection, projection_horizon


def flat_goal(**overrides) -> Goal:
    base = dict(
        amount=100_000,
        retirement_year=2024,
        annual_return=0.0,
        monthly_deposits=100,
        start_date="2024-06-15",
    )
    base.update(overrides)
    return Goal(**base)


def test_reference_plan_spans_2024_01_to_2050_12(demo_goal):
    points = generate_projection(demo_goal, 0)
    assert len(points) == 324
    assert points[0].date == "2024-01"
    assert points[-1].date == "2050-12"
    assert len(points) == total_months(date(2024, 1, 1), 2050) + 1


def test_cumulative_contributions_never_decrease(demo_goal):
    points = generate_projection(demo_goal, 0)
    contribs = [p.cumulative_contributions for p in points]
    assert all(b >= a for a, b in zip(contribs, contribs[1:]))


def test_deposit_escalates_each_january_after_first_point(demo_goal):
    points = generate_projection(demo_goal, 0)
    assert points[11].date == "2024-12"
    assert points[11].monthly_contribution == 1500
    assert points[12].date == "2025-01"
    assert points[12].monthly_contribution == round_half_away(1500 * 1.02)
    assert points[24].monthly_contribution == round_half_away(1500 * 1.02 * 1.02)


def test_first_point_earns_nothing_on_zero_balance(demo_goal):
    first = generate_projection(demo_goal, 0)[0]
    assert first.monthly_return == 0
    assert first.value == 1500
    assert first.principal_value == 1500


def test_zero_return_plan_adds_deposits_to_net_worth():
    points = generate_projection(flat_goal(), 10_000)
    # June through December
    assert [p.date for p in points] == [f"2024-{m:02d}" for m in range(6, 13)]
    assert [p.value for p in points] == [10_100 + 100 * i for i in range(7)]
    assert points[-1].principal_value == 10_700
    assert points[-1].cumulative_returns == 0


def test_start_date_accepts_date_objects():
    assert generate_projection(flat_goal(start_date=date(2024, 6, 1)), 0)[0].date == "2024-06"


def test_geometric_compounding_reaches_annual_return_in_twelve_months():
    goal = flat_goal(monthly_deposits=0, annual_return=0.12, start_date="2024-01-01")
    points = generate_projection(goal, 1_000)
    assert len(points) == 12
    assert points[-1].value == 1_120


def test_simple_compounding_is_selectable():
    goal = flat_goal(monthly_deposits=0, annual_return=0.12, start_date="2024-01-01")
    points = generate_projection(goal, 1_000, config=EngineConfig(compounding="simple"))
    assert points[-1].value == round_half_away(1_000 * 1.01 ** 12)


def test_cumulative_returns_match_value_breakdown():
    goal = flat_goal(annual_return=0.08, start_date="2024-01-01", retirement_year=2030)
    points = generate_projection(goal, 5_000)
    last = points[-1]
    # each field is rounded on its own
    assert abs(last.value - (5_000 + last.cumulative_contributions + last.cumulative_returns)) <= 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"start_date": None},
        {"start_date": ""},
        {"start_date": "not-a-date"},
        {"start_date": "2024-12-01"},  # no months left in the retirement year
        {"retirement_year": 2023},
        {"annual_return": -1.0},
    ],
)
def test_unprojectable_goals_return_empty(overrides):
    assert generate_projection(flat_goal(**overrides), 1_000) == []


def test_negative_increase_keeps_deposits_flat():
    goal = flat_goal(deposit_increase_percentage=-0.5, start_date="2024-01-01", retirement_year=2026)
    points = generate_projection(goal, 0)
    assert {p.monthly_contribution for p in points} == {100}


def test_projection_horizon():
    assert projection_horizon(flat_goal()) == 6
    assert projection_horizon(flat_goal(start_date=None)) == 0


def test_projection_to_frame_columns(demo_goal):
    df = projection_to_frame(generate_projection(demo_goal, 0))
    assert list(df.columns[:4]) == ["year", "month", "date", "value"]
    assert len(df) == 324
    assert projection_to_frame([]).empty


def test_rounding_is_half_away_from_zero():
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.49) == 0
    assert list(round_half_away_array([0.5, 1.5, -0.5])) == [1.0, 2.0, -1.0]


def test_monthly_rate_conventions():
    assert isclose((1 + monthly_rate(0.07)) ** 12, 1.07)
    assert isclose(monthly_rate(0.12, "simple"), 0.01)
    assert monthly_rate(0.0) == 0.0
