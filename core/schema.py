"""
Shared value types passed between the engine layers.

Everything here is an immutable input or output record. Component-specific
result containers (SimulationResult, RiskAnalysisResult, ...) live next to the
code that builds them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from datetime import date
from typing import Iterable, Optional, Tuple, Union

import pandas as pd

# Column order for tabular exports of a projection.
PROJECTION_COLUMNS: Tuple[str, ...] = (
    "year",
    "month",
    "date",
    "value",
    "goal",
    "monthly_contribution",
    "cumulative_contributions",
    "monthly_return",
    "cumulative_returns",
    "principal_value",
)

EXTENDED_COLUMNS: Tuple[str, ...] = PROJECTION_COLUMNS + (
    "actual_contributions",
    "actual_value",
    "actual_returns",
    "p10",
    "p50",
    "p90",
)


@dataclass(frozen=True)
class Goal:
    """
    Target net worth plus the contribution/return assumptions used to reach it.

    annual_return and deposit_increase_percentage are decimals (0.07 for 7%).
    start_date accepts an ISO string ("2024-01-01") or a date; None means the
    plan has not been configured yet and every generator returns nothing.
    """
    amount: float
    retirement_year: int
    annual_return: float
    monthly_deposits: float
    deposit_increase_percentage: float = 0.0
    start_date: Optional[Union[str, date]] = None
    target_year: Optional[int] = None

    def with_return(self, annual_return: float) -> "Goal":
        return replace(self, annual_return=annual_return)


@dataclass(frozen=True)
class ProjectionPoint:
    """One month of a forecast. Numeric fields are whole currency units."""
    year: int
    month: int  # 1-12
    date: str  # "YYYY-MM"
    value: float
    goal: float
    monthly_contribution: float
    cumulative_contributions: float
    monthly_return: float
    cumulative_returns: float
    principal_value: float  # current net worth + cumulative contributions

    @property
    def investment_value(self) -> float:
        """Value excluding contributions, used by every return calculation."""
        return self.value - self.cumulative_contributions


@dataclass(frozen=True)
class ExtendedProjectionPoint(ProjectionPoint):
    actual_contributions: Optional[float] = None
    actual_value: Optional[float] = None
    actual_returns: Optional[float] = None
    p10: Optional[float] = None
    p50: Optional[float] = None
    p90: Optional[float] = None

    @classmethod
    def from_point(cls, point: ProjectionPoint, **extra) -> "ExtendedProjectionPoint":
        base = {f.name: getattr(point, f.name) for f in fields(ProjectionPoint)}
        return cls(**base, **extra)


@dataclass(frozen=True)
class Scenario:
    id: str
    name: str
    return_adjustment: float  # signed delta on the annual return
    is_active: bool = True
    description: str = ""


@dataclass(frozen=True)
class Transaction:
    """Holding transaction supplied by the ledger. Only read, never mutated."""
    date: Union[str, date]
    action: str  # "Buy" | "Sell"
    shares: float
    price: float
    currency: str
    ticker: Optional[str] = None

    @property
    def gross_amount(self) -> float:
        return float(self.shares) * float(self.price)


def projection_to_frame(points: Iterable[ProjectionPoint]) -> pd.DataFrame:
    """Tabular view of a projection (extended points keep their extra columns)."""
    rows = [asdict(p) for p in points]
    if not rows:
        return pd.DataFrame(columns=list(PROJECTION_COLUMNS))
    df = pd.DataFrame(rows)
    ordered = [c for c in EXTENDED_COLUMNS if c in df.columns]
    return df[ordered]
