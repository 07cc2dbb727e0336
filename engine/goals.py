"""
Goal calculators: how long until a target is reached, what it takes to reach
it sooner, and what a plan is worth at retirement.

All three use the same monthly rate convention and the same order of
operations as the projection generator (return on the balance first, then the
deposit; deposits escalate once every twelve months).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

import numpy as np

from core.config import CompoundingConvention
from core.utils import monthly_rate, round_half_away

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearsToGoal:
    """
    base_years is None when the goal is not reached within the search horizon.
    confidence_interval is (years at the higher return, years at the lower return).
    """
    base_years: Optional[int]
    confidence_interval: Tuple[Optional[int], Optional[int]]


@dataclass(frozen=True)
class RequiredContribution:
    years: int
    required_monthly: float
    current_shortfall: float
    recommended_increase: float


def _months_to_reach(
    goal_amount: float,
    current_net_worth: float,
    monthly_deposits: float,
    annual_return: float,
    deposit_increase_percentage: float,
    max_months: int,
    compounding: CompoundingConvention,
) -> Optional[int]:
    rate = monthly_rate(annual_return, compounding)
    balance = float(current_net_worth)
    deposit = float(monthly_deposits)
    for m in range(max_months):
        if m > 0 and m % 12 == 0 and deposit_increase_percentage > 0:
            deposit *= 1.0 + deposit_increase_percentage
        balance += balance * rate + deposit
        if balance >= goal_amount:
            return m + 1
    return None


def _years(months: Optional[int]) -> Optional[int]:
    if months is None:
        return None
    return int(math.ceil(months / 12.0))


def years_to_goal(
    goal_amount: float,
    current_net_worth: float,
    monthly_deposits: float,
    annual_return: float,
    deposit_increase_percentage: float = 0.0,
    *,
    return_band: float = 0.02,
    max_years: int = 100,
    compounding: CompoundingConvention = "geometric",
) -> YearsToGoal:
    """
    Whole years (rounded up) until the balance first reaches goal_amount.

    The interval re-runs the search at annual_return +/- return_band. A goal
    that is already met gives 0 years and a (0, 0) interval.
    """
    if current_net_worth >= goal_amount:
        return YearsToGoal(base_years=0, confidence_interval=(0, 0))

    max_months = int(max_years) * 12

    def search(r: float) -> Optional[int]:
        if r <= -1.0:
            return None
        months = _months_to_reach(
            goal_amount, current_net_worth, monthly_deposits, r,
            deposit_increase_percentage, max_months, compounding,
        )
        return _years(months)

    base = search(annual_return)
    fast = search(annual_return + return_band)
    slow = search(annual_return - return_band)
    if base is None:
        logger.info("Goal of %.0f not reached within %d years", goal_amount, max_years)
    return YearsToGoal(base_years=base, confidence_interval=(fast, slow))


def _growth_factors(months: int, rate: float, deposit_increase_percentage: float):
    """(growth of today's balance, growth of one unit of starting monthly deposit)."""
    exponents = np.arange(months - 1, -1, -1, dtype=float)
    escalation = (1.0 + max(0.0, deposit_increase_percentage)) ** (np.arange(months) // 12)
    deposit_factor = float(np.sum(escalation * (1.0 + rate) ** exponents))
    return (1.0 + rate) ** months, deposit_factor


def required_contributions(
    goal_amount: float,
    current_net_worth: float,
    years: int,
    annual_return: float,
    deposit_increase_percentage: float = 0.0,
    current_monthly_deposit: float = 0.0,
    *,
    compounding: CompoundingConvention = "geometric",
) -> RequiredContribution:
    """
    Starting monthly deposit that reaches goal_amount in exactly `years` years.

    Deposits escalate as in the projection, so the figure is what to pay in the
    first year. required_monthly is 0 when today's balance already grows into the
    goal on its own, and infinite when years <= 0 and the goal is not yet met.
    """
    months = int(years) * 12
    if months <= 0:
        required = 0.0 if current_net_worth >= goal_amount else math.inf
    else:
        rate = monthly_rate(annual_return, compounding)
        balance_growth, deposit_factor = _growth_factors(months, rate, deposit_increase_percentage)
        gap = goal_amount - current_net_worth * balance_growth
        required = max(0.0, gap / deposit_factor) if deposit_factor > 0 else 0.0

    shortfall = required - current_monthly_deposit
    return RequiredContribution(
        years=int(years),
        required_monthly=required,
        current_shortfall=shortfall,
        recommended_increase=max(0.0, shortfall),
    )


def calculate_goal_amount(
    current_net_worth: float,
    retirement_year: int,
    annual_return: float,
    monthly_deposits: float,
    *,
    current_year: Optional[int] = None,
    compounding: CompoundingConvention = "geometric",
) -> float:
    """
    Suggested goal: future value of today's net worth plus the level deposit annuity.

        FV = PV (1 + i)^n + PMT ((1 + i)^n - 1) / i

    with n = 12 * (retirement_year - current_year). Past retirement years give
    the current net worth back.
    """
    year = current_year if current_year is not None else date.today().year
    years = int(retirement_year) - int(year)
    if years <= 0:
        return float(current_net_worth)

    n = years * 12
    rate = monthly_rate(annual_return, compounding)
    growth = (1.0 + rate) ** n
    if rate == 0:
        annuity = monthly_deposits * n
    else:
        annuity = monthly_deposits * (growth - 1.0) / rate
    return round_half_away(current_net_worth * growth + annuity)
