from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from core.schema import ProjectionPoint
from core.utils import add_months, month_key


def point(key: str, value: float, contributions: float = 0.0) -> ProjectionPoint:
    """A bare ProjectionPoint for "YYYY-MM" key; only value/contributions matter."""
    year, month = (int(part) for part in key.split("-"))
    return ProjectionPoint(
        year=year,
        month=month,
        date=key,
        value=float(value),
        goal=0.0,
        monthly_contribution=0.0,
        cumulative_contributions=float(contributions),
        monthly_return=0.0,
        cumulative_returns=0.0,
        principal_value=float(contributions),
    )


def make_series(
    values: Sequence[float],
    contributions: Optional[Sequence[float]] = None,
    start: date = date(2020, 1, 1),
) -> list:
    """Consecutive monthly points starting at `start`."""
    out = []
    for i, v in enumerate(values):
        c = contributions[i] if contributions is not None else 0.0
        out.append(point(month_key(add_months(start, i)), v, c))
    return out
