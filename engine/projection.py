"""
Deterministic month-by-month projection of a savings plan.

Order of operations (per month):
  1) In January of every year after the first point, escalate the monthly
     deposit by (1 + deposit_increase_percentage).
  2) Apply the month's return to the balance carried in from last month.
  3) Add the month's deposit (it earns nothing this month).
  4) Record the point, rounding every numeric field once to whole units.

The accumulation kernel (`accumulate`) takes a rate per month, or a matrix of
rates per path and month, so the Monte Carlo layer runs the exact same
arithmetic with stochastic rates instead of the fixed one.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

import numpy as np

from core.config import DEFAULT_CONFIG, EngineConfig
from core.schema import Goal, ProjectionPoint
from core.utils import (
    month_key,
    month_range,
    monthly_rate,
    parse_date,
    round_half_away,
    round_half_away_array,
    total_months,
)
from data_prep.validators import validate_goal

logger = logging.getLogger(__name__)


def projection_horizon(goal: Goal) -> int:
    """Number of months after the start month; 0 when the goal cannot be projected."""
    start = parse_date(goal.start_date)
    if start is None or not goal.retirement_year:
        return 0
    return max(0, total_months(start, goal.retirement_year))


def projection_dates(goal: Goal) -> List[date]:
    """First-of-month dates for every point of the projection (horizon + 1 of them)."""
    horizon = projection_horizon(goal)
    if horizon <= 0:
        return []
    return month_range(parse_date(goal.start_date), horizon + 1)


def deposit_schedule(goal: Goal, dates: List[date]) -> np.ndarray:
    """Monthly deposit for each date, escalated once per elapsed calendar year."""
    deposits = np.empty(len(dates), dtype=float)
    deposit = float(goal.monthly_deposits)
    increase = float(goal.deposit_increase_percentage)
    for i, d in enumerate(dates):
        if i > 0 and d.month == 1 and increase > 0:
            deposit *= 1.0 + increase
        deposits[i] = deposit
    return deposits


def accumulate(current_net_worth: float, deposits: np.ndarray, rates: np.ndarray):
    """
    Run the balance forward.

    Parameters
    ----------
    deposits : np.ndarray
        shape (n_months,)
    rates : np.ndarray
        shape (n_months,) for one path or (n_paths, n_months) for many

    Returns
    -------
    (values, return_amounts), both shaped like `rates`, unrounded.
    """
    rates = np.asarray(rates, dtype=float)
    n_months = rates.shape[-1]
    values = np.empty_like(rates)
    return_amounts = np.empty_like(rates)

    balance = np.full(rates.shape[:-1], float(current_net_worth))
    for t in range(n_months):
        ret = balance * rates[..., t]
        balance = balance + ret + deposits[t]
        values[..., t] = balance
        return_amounts[..., t] = ret
    return values, return_amounts


def build_points(
    goal: Goal,
    current_net_worth: float,
    dates: List[date],
    deposits: np.ndarray,
    values: np.ndarray,
    return_amounts: np.ndarray,
) -> List[ProjectionPoint]:
    """Turn one path of raw arrays into rounded ProjectionPoints."""
    cum_contrib = np.cumsum(deposits)
    cum_returns = np.cumsum(return_amounts)

    r_value = round_half_away_array(values)
    r_deposit = round_half_away_array(deposits)
    r_cum_contrib = round_half_away_array(cum_contrib)
    r_return = round_half_away_array(return_amounts)
    r_cum_returns = round_half_away_array(cum_returns)
    r_principal = round_half_away_array(cum_contrib + float(current_net_worth))
    goal_amount = round_half_away(float(goal.amount))

    return [
        ProjectionPoint(
            year=d.year,
            month=d.month,
            date=month_key(d),
            value=float(r_value[i]),
            goal=goal_amount,
            monthly_contribution=float(r_deposit[i]),
            cumulative_contributions=float(r_cum_contrib[i]),
            monthly_return=float(r_return[i]),
            cumulative_returns=float(r_cum_returns[i]),
            principal_value=float(r_principal[i]),
        )
        for i, d in enumerate(dates)
    ]


def generate_projection(
    goal: Goal,
    current_net_worth: float,
    *,
    config: Optional[EngineConfig] = None,
) -> List[ProjectionPoint]:
    """
    Project the plan from its start month through December of the retirement year.

    Returns an empty list (never raises) when the goal has no usable start date,
    a non-positive horizon, or a return that cannot be compounded.
    """
    cfg = config or DEFAULT_CONFIG

    check = validate_goal(goal)
    if not check.is_valid:
        logger.warning("Goal cannot be projected: %s", "; ".join(check.errors))
        return []

    dates = projection_dates(goal)
    if not dates:
        return []

    deposits = deposit_schedule(goal, dates)
    rate = monthly_rate(goal.annual_return, cfg.compounding)
    rates = np.full(len(dates), rate, dtype=float)
    values, return_amounts = accumulate(current_net_worth, deposits, rates)

    logger.debug(
        "Projected %d months from %s at %.4f/month (%s)",
        len(dates), month_key(dates[0]), rate, cfg.compounding,
    )
    return build_points(goal, current_net_worth, dates, deposits, values, return_amounts)
