from __future__ import annotations

import math
from datetime import date
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta

from .config import CompoundingConvention


def round_half_away(x: float) -> float:
    """Round to whole units, half away from zero (not Python's banker's rounding)."""
    return math.copysign(math.floor(abs(x) + 0.5), x) + 0.0


def round_half_away_array(x, decimals: int = 0) -> np.ndarray:
    """Vectorized round_half_away."""
    m = 10 ** decimals
    x = np.asarray(x, dtype=float)
    return np.sign(x) * (np.floor(np.abs(x) * m + 0.5) / m) + 0.0


def monthly_rate(annual_return: float, convention: CompoundingConvention = "geometric") -> float:
    """
    Convert an annual return into the rate applied each month.

    geometric: (1 + r)^(1/12) - 1, twelve months compound back to exactly r.
    simple:    r / 12, nominal rate compounded monthly.
    """
    if convention == "simple":
        return annual_return / 12.0
    return (1.0 + annual_return) ** (1.0 / 12.0) - 1.0


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse an ISO date string (or pass a date through). Unparseable -> None."""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def month_key(d: date) -> str:
    """"YYYY-MM" key used to align projections, transactions and heatmaps."""
    return f"{d.year:04d}-{d.month:02d}"


def add_months(d: date, n: int) -> date:
    return d + relativedelta(months=n)


def total_months(start: date, retirement_year: int) -> int:
    """Months after the start month up to December of the retirement year."""
    return (int(retirement_year) - start.year) * 12 + (12 - start.month)


def month_range(start: date, n_months: int) -> list:
    """First-of-month dates for n_months consecutive months starting at start."""
    first = date(start.year, start.month, 1)
    return [first + relativedelta(months=k) for k in range(n_months)]


def investment_return(prev_investment: float, curr_investment: float) -> float:
    """Return on the investment-only value; 0 when there is nothing invested yet."""
    if prev_investment <= 0:
        return 0.0
    return (curr_investment - prev_investment) / prev_investment


def epoch_seconds(date_keys: Iterable[str]) -> np.ndarray:
    """Date keys ("YYYY-MM" or full ISO dates) as float seconds since the epoch."""
    keys = [f"{k}-01" if len(str(k)) == 7 else str(k) for k in date_keys]
    ts = pd.to_datetime(pd.Series(keys, dtype=object), format="ISO8601")
    return (ts - pd.Timestamp("1970-01-01")).dt.total_seconds().to_numpy(dtype=float)


def population_std(values) -> float:
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.std(arr))
