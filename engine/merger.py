"""
Actual vs projected: overlay the transaction ledger on a projection.

Buy transactions add to contributions and Sell transactions subtract, each
converted with fx_rates[currency] (1.0 when the currency has no rate). Amounts
are bucketed by "YYYY-MM" and accumulated across the projection span.
Contributions dated before the first projected month form the opening balance.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from core.schema import ExtendedProjectionPoint, ProjectionPoint, Transaction
from core.utils import month_key, parse_date
from data_prep.validators import validate_transactions

from .montecarlo import PERCENTILE_KEYS, SimulationResult

logger = logging.getLogger(__name__)

FxRates = Mapping[str, float]


def _signed_amount(tx: Transaction, fx_rates: FxRates) -> float:
    amount = tx.gross_amount * float(fx_rates.get(tx.currency, 1.0))
    if tx.action == "Buy":
        return amount
    if tx.action == "Sell":
        return -amount
    return 0.0


def contributions_by_month(
    transactions: Iterable[Transaction],
    fx_rates: Optional[FxRates] = None,
) -> pd.Series:
    """
    Net contribution per month, indexed by "YYYY-MM" and sorted.
    Rows with unparseable dates or unknown actions contribute nothing.
    """
    rates = fx_rates or {}
    rows = []
    for tx in transactions:
        d = parse_date(tx.date)
        if d is None:
            continue
        rows.append((month_key(d), _signed_amount(tx, rates)))
    if not rows:
        return pd.Series(dtype=float, name="contribution")
    df = pd.DataFrame(rows, columns=["month", "contribution"])
    return df.groupby("month")["contribution"].sum().sort_index()


def cumulative_actual_contributions(
    transactions: Iterable[Transaction],
    fx_rates: Optional[FxRates],
    start_month: str,
    end_month: str,
) -> Dict[str, float]:
    """
    Running total of contributions for every month from start_month to
    end_month inclusive (both "YYYY-MM").
    """
    monthly = contributions_by_month(transactions, fx_rates)
    months = pd.period_range(start=start_month, end=end_month, freq="M").strftime("%Y-%m")
    if len(months) == 0:
        return {}

    opening = float(monthly[monthly.index < start_month].sum()) if len(monthly) else 0.0
    in_span = monthly.reindex(months, fill_value=0.0)
    running = in_span.cumsum() + opening
    return {m: float(v) for m, v in running.items()}


def total_contributions(
    transactions: Iterable[Transaction],
    fx_rates: Optional[FxRates] = None,
) -> float:
    """Net contributions over the whole ledger."""
    return float(contributions_by_month(transactions, fx_rates).sum())


def merge_projected_with_actual(
    projection: List[ProjectionPoint],
    transactions: Iterable[Transaction],
    fx_rates: Optional[FxRates],
    current_net_worth: float,
    simulation: Optional[SimulationResult] = None,
    *,
    as_of: Optional[Union[str, date]] = None,
    base_currency: Optional[str] = None,
) -> List[ExtendedProjectionPoint]:
    """
    Attach actual contributions (up to the current month), the actual value and
    returns (current month only), and simulation percentiles (by index).

    as_of defaults to today; pass a date to make the merge reproducible. An
    unparseable as_of also falls back to today. Rows in base_currency need no
    fx rate and are not reported as missing one.
    """
    if not projection:
        return []

    transactions = list(transactions)
    check = validate_transactions(transactions, fx_rates, base_currency=base_currency)
    for warning in check.warnings:
        logger.warning("Transaction ledger: %s", warning)

    cumulative = cumulative_actual_contributions(
        transactions, fx_rates, projection[0].date, projection[-1].date
    )
    today = parse_date(as_of) if as_of is not None else date.today()
    if today is None:
        logger.warning("Unparseable as_of %r; using today", as_of)
        today = date.today()
    current_month = month_key(today)

    bands = {}
    if simulation is not None and not simulation.is_empty:
        bands = {key: simulation.percentiles.get(key, []) for key in PERCENTILE_KEYS}

    merged = []
    for i, point in enumerate(projection):
        extra = {}
        if point.date <= current_month:
            extra["actual_contributions"] = cumulative.get(point.date)
        if point.date == current_month:
            contributed = cumulative.get(point.date, 0.0)
            extra["actual_value"] = float(current_net_worth)
            extra["actual_returns"] = float(current_net_worth) - contributed
        for key, band in bands.items():
            if i < len(band):
                extra[key] = band[i].value
        merged.append(ExtendedProjectionPoint.from_point(point, **extra))
    return merged
