"""
Calendar analytics over a projection: seasonal patterns, year-over-year
progress and a month-by-month performance heatmap.

All returns are investment-only (contributions removed), as in analytics.risk.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from core.config import DEFAULT_CONFIG, EngineConfig
from core.schema import ProjectionPoint
from core.utils import investment_return, population_std


@dataclass(frozen=True)
class SeasonalPattern:
    month: int
    average_return: float
    best_year: int
    worst_year: int
    pattern_strength: float  # 0..1


@dataclass(frozen=True)
class YoYComparison:
    year: int
    start_value: float
    end_value: float
    annual_return: float
    annual_contributions: float
    annual_growth: float


@dataclass
class TimeBasedAnalysisResult:
    seasonal_patterns: List[SeasonalPattern] = field(default_factory=list)
    year_over_year: List[YoYComparison] = field(default_factory=list)
    best_months: List[SeasonalPattern] = field(default_factory=list)
    worst_months: List[SeasonalPattern] = field(default_factory=list)
    performance_heatmap: Dict[str, float] = field(default_factory=dict)

    def year_over_year_to_dataframe(self) -> pd.DataFrame:
        cols = ["year", "start_value", "end_value", "annual_return", "annual_contributions", "annual_growth"]
        return pd.DataFrame([asdict(c) for c in self.year_over_year], columns=cols)

    def heatmap_table(self) -> pd.DataFrame:
        """Heatmap as a year x month grid (percent); missing months are NaN."""
        if not self.performance_heatmap:
            return pd.DataFrame(columns=list(range(1, 13)), dtype=float)
        s = pd.Series(self.performance_heatmap)
        idx = pd.to_datetime(s.index, format="%Y-%m")
        df = pd.DataFrame({"year": idx.year, "month": idx.month, "return_pct": s.to_numpy()})
        table = df.pivot(index="year", columns="month", values="return_pct")
        return table.reindex(columns=range(1, 13))


def pattern_strength(
    returns: Sequence[float],
    consistency_weight: float = 0.7,
    dispersion_weight: float = 0.3,
) -> float:
    """
    How reliably a calendar month behaves the same way from year to year.

    consistency = share of returns with the same sign as their mean
    dispersion  = min(1, 10 * std)
    strength    = consistency_weight * consistency + dispersion_weight * (1 - dispersion)

    clamped to [0, 1]; 0 when there are fewer than two returns.
    """
    arr = np.asarray(returns, dtype=float)
    if arr.size <= 1:
        return 0.0
    mean = arr.mean()
    same_sign = np.sum(((arr > 0) & (mean > 0)) | ((arr < 0) & (mean < 0)))
    consistency = same_sign / arr.size
    dispersion = min(1.0, population_std(arr) * 10.0)
    strength = consistency_weight * consistency + dispersion_weight * (1.0 - dispersion)
    return float(min(1.0, max(0.0, strength)))


def seasonal_patterns(
    projection: Sequence[ProjectionPoint],
    *,
    config: Optional[EngineConfig] = None,
) -> List[SeasonalPattern]:
    """
    Compare each point with the same calendar month one year earlier.

    Returns one pattern per calendar month that has at least one comparison,
    sorted by average return, best first.
    """
    cfg = config or DEFAULT_CONFIG
    by_month = {(p.year, p.month): p for p in projection}

    rows = []
    for p in projection:
        prior = by_month.get((p.year - 1, p.month))
        if prior is None or prior.investment_value <= 0:
            continue
        rows.append((p.month, p.year, investment_return(prior.investment_value, p.investment_value)))
    if not rows:
        return []

    df = pd.DataFrame(rows, columns=["month", "year", "ret"])
    patterns = []
    for month, grp in df.groupby("month", sort=True):
        rets = grp["ret"].to_numpy()
        years = grp["year"].to_numpy()
        patterns.append(SeasonalPattern(
            month=int(month),
            average_return=float(rets.mean()),
            best_year=int(years[int(np.argmax(rets))]),
            worst_year=int(years[int(np.argmin(rets))]),
            pattern_strength=pattern_strength(
                rets, cfg.pattern_consistency_weight, cfg.pattern_dispersion_weight
            ),
        ))
    return sorted(patterns, key=lambda s: s.average_return, reverse=True)


def year_over_year(projection: Sequence[ProjectionPoint]) -> List[YoYComparison]:
    """First vs last point of every calendar year present, oldest year first."""
    firsts: Dict[int, ProjectionPoint] = {}
    lasts: Dict[int, ProjectionPoint] = {}
    for p in projection:
        firsts.setdefault(p.year, p)
        lasts[p.year] = p

    out = []
    for year in sorted(firsts):
        start, end = firsts[year], lasts[year]
        out.append(YoYComparison(
            year=year,
            start_value=start.value,
            end_value=end.value,
            annual_return=investment_return(start.investment_value, end.investment_value),
            annual_contributions=end.cumulative_contributions - start.cumulative_contributions,
            annual_growth=end.value - start.value,
        ))
    return out


def performance_heatmap(projection: Sequence[ProjectionPoint]) -> Dict[str, float]:
    """Month-on-month investment return in percent, keyed by the later month."""
    heatmap: Dict[str, float] = {}
    for prev, curr in zip(projection[:-1], projection[1:]):
        if prev.investment_value <= 0:
            continue
        heatmap[curr.date] = investment_return(prev.investment_value, curr.investment_value) * 100.0
    return heatmap


def analyze_time_series(
    projection: Sequence[ProjectionPoint],
    *,
    config: Optional[EngineConfig] = None,
) -> TimeBasedAnalysisResult:
    if not projection:
        return TimeBasedAnalysisResult()

    patterns = seasonal_patterns(projection, config=config)
    return TimeBasedAnalysisResult(
        seasonal_patterns=patterns,
        year_over_year=year_over_year(projection),
        best_months=patterns[:3],
        worst_months=sorted(patterns, key=lambda s: s.average_return)[:3],
        performance_heatmap=performance_heatmap(projection),
    )
