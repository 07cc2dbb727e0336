"""
Risk statistics for a projection series.

Every return here is investment-only: the month's change in
(value - cumulative contributions), divided by last month's investment value.
Deposits are not performance, so they never count as return. A month whose
previous investment value is zero or negative contributes a 0 return.

Drawdowns are measured on the total projected value.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from core.config import DEFAULT_CONFIG, EngineConfig
from core.schema import ProjectionPoint
from core.utils import investment_return, population_std, round_half_away

logger = logging.getLogger(__name__)

ROLLING_WINDOWS = (("1y", 12, 1), ("3y", 36, 3), ("5y", 60, 5))

RATING_DESCRIPTIONS = {
    "Low": "Low risk profile with stable returns and minimal drawdowns",
    "Medium": "Moderate risk profile with balanced returns and drawdowns",
    "High": "High risk profile with significant volatility and potential drawdowns",
    "Very High": "Very high risk profile with extreme volatility and large potential drawdowns",
}


@dataclass(frozen=True)
class RiskMetrics:
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    max_drawdown: float = 0.0  # fraction of peak
    volatility: float = 0.0  # population std of monthly returns
    rolling_returns: Dict[str, float] = field(default_factory=dict)
    value_at_risk: float = 0.0
    conditional_value_at_risk: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class RiskRating:
    rating: str  # Low | Medium | High | Very High
    description: str
    score: float


@dataclass(frozen=True)
class DrawdownPeriod:
    start_date: str  # date of the peak the decline started from
    trough_date: str
    end_date: str
    drawdown_percent: float  # fraction, 0.12 = 12%
    recovery_date: Optional[str] = None  # None while still under water


@dataclass
class RiskAnalysisResult:
    metrics: RiskMetrics = field(default_factory=RiskMetrics)
    risk_adjusted_projection: List[ProjectionPoint] = field(default_factory=list)
    drawdown_periods: List[DrawdownPeriod] = field(default_factory=list)

    def drawdowns_to_dataframe(self) -> pd.DataFrame:
        cols = ["start_date", "trough_date", "end_date", "drawdown_percent", "recovery_date"]
        return pd.DataFrame([asdict(p) for p in self.drawdown_periods], columns=cols)

    def summary(self) -> pd.DataFrame:
        """One row per headline metric."""
        m = self.metrics
        rows = [
            ("Sharpe ratio", m.sharpe_ratio),
            ("Sortino ratio", m.sortino_ratio),
            ("Max drawdown", m.max_drawdown),
            ("Volatility (monthly)", m.volatility),
            ("Value at risk", m.value_at_risk),
            ("Conditional value at risk", m.conditional_value_at_risk),
        ]
        return pd.DataFrame(rows, columns=["metric", "value"])


# ---------------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------------

def monthly_returns(projection: Sequence[ProjectionPoint]) -> np.ndarray:
    """Investment-only return for every consecutive pair (len(projection) - 1 of them)."""
    if len(projection) <= 1:
        return np.empty(0, dtype=float)
    return np.array(
        [
            investment_return(prev.investment_value, curr.investment_value)
            for prev, curr in zip(projection[:-1], projection[1:])
        ],
        dtype=float,
    )


def sharpe_ratio(returns: np.ndarray, risk_free_rate: float = 0.02) -> float:
    if returns.size == 0:
        return 0.0
    std = population_std(returns)
    if std == 0:
        return 0.0
    return float((returns.mean() - risk_free_rate / 12.0) / std)


def sortino_ratio(returns: np.ndarray, risk_free_rate: float = 0.02) -> float:
    """
    Excess return over downside deviation. The downside deviation squares the
    distance of each negative return from the mean and divides by the count of
    ALL returns, not just the negative ones.
    """
    if returns.size == 0:
        return 0.0
    negatives = returns[returns < 0]
    if negatives.size == 0:
        return 0.0
    mean = returns.mean()
    downside = math.sqrt(float(np.sum((negatives - mean) ** 2)) / returns.size)
    if downside == 0:
        return 0.0
    return float((mean - risk_free_rate / 12.0) / downside)


def rolling_returns(projection: Sequence[ProjectionPoint]) -> Dict[str, float]:
    """
    Investment-only growth over trailing 12/36/60-month windows, keyed
    "1y_YYYY-MM" / "3y_..." / "5y_..." by the window's end month. Multi-year
    windows are annualized; windows starting with nothing invested are skipped.
    """
    out: Dict[str, float] = {}
    n = len(projection)
    for label, months, years in ROLLING_WINDOWS:
        for i in range(months, n):
            base = projection[i - months].investment_value
            if base <= 0:
                continue
            total = (projection[i].investment_value - base) / base
            if years > 1:
                total = -1.0 if total <= -1.0 else (1.0 + total) ** (1.0 / years) - 1.0
            out[f"{label}_{projection[i].date}"] = total
    return out


# ---------------------------------------------------------------------------
# Drawdowns
# ---------------------------------------------------------------------------

def drawdowns(projection: Sequence[ProjectionPoint], recovery_band: float = 0.01):
    """
    Running-peak drawdown with episodes.

    An episode opens at a peak and closes once the value climbs back to within
    recovery_band of that peak; the closing point becomes the next peak. Only
    episodes deeper than recovery_band are reported. An episode still open at
    the end is reported with recovery_date None.

    Returns (max_drawdown, [DrawdownPeriod, ...]).
    """
    if not projection:
        return 0.0, []

    max_dd = 0.0
    periods: List[DrawdownPeriod] = []

    peak = projection[0].value
    peak_date = projection[0].date
    depth = 0.0
    trough_date = peak_date

    for point in projection[1:]:
        v = point.value
        if peak > 0 and v < peak:
            dd = (peak - v) / peak
            max_dd = max(max_dd, dd)
            if dd > depth:
                depth = dd
                trough_date = point.date

        if depth > recovery_band and v >= peak * (1.0 - recovery_band):
            periods.append(DrawdownPeriod(
                start_date=peak_date,
                trough_date=trough_date,
                end_date=point.date,
                drawdown_percent=depth,
                recovery_date=point.date,
            ))
            peak, peak_date, depth, trough_date = v, point.date, 0.0, point.date
        elif v > peak:
            peak, peak_date, depth, trough_date = v, point.date, 0.0, point.date

    if depth > recovery_band:
        periods.append(DrawdownPeriod(
            start_date=peak_date,
            trough_date=trough_date,
            end_date=projection[-1].date,
            drawdown_percent=depth,
        ))

    return max_dd, periods


# ---------------------------------------------------------------------------
# Tail risk
# ---------------------------------------------------------------------------

def _var_index(n: int, confidence: float) -> int:
    return min(int(math.floor(n * (1.0 - confidence))), n - 1)


def value_at_risk(returns: np.ndarray, latest_value: float, confidence: float = 0.95) -> float:
    """Historical VaR: the sorted return at floor(n * (1 - c)), in currency at the latest value."""
    if returns.size == 0:
        return 0.0
    ordered = np.sort(returns)
    return float(latest_value * ordered[_var_index(ordered.size, confidence)])


def conditional_value_at_risk(returns: np.ndarray, latest_value: float, confidence: float = 0.95) -> float:
    """Mean of every sorted return up to and including the VaR index, in currency."""
    if returns.size == 0:
        return 0.0
    ordered = np.sort(returns)
    tail = ordered[: _var_index(ordered.size, confidence) + 1]
    return float(latest_value * tail.mean())


def risk_adjusted_projection(
    projection: Sequence[ProjectionPoint],
    volatility: float,
    weight: float = 0.5,
) -> List[ProjectionPoint]:
    """Haircut value / monthly return / cumulative returns by (1 - weight * volatility)."""
    factor = 1.0 - weight * volatility
    return [
        replace(
            p,
            value=round_half_away(p.value * factor),
            monthly_return=round_half_away(p.monthly_return * factor),
            cumulative_returns=round_half_away(p.cumulative_returns * factor),
        )
        for p in projection
    ]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def analyze_risk(
    projection: Sequence[ProjectionPoint],
    risk_free_rate: Optional[float] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> RiskAnalysisResult:
    """
    Full risk analysis of one projection.

    Parameters
    ----------
    projection : sequence of ProjectionPoint
        Any projection (deterministic, scenario or a simulated path).
    risk_free_rate : float, optional
        Annual rate; defaults to config.risk_free_rate (0.02).

    Returns
    -------
    RiskAnalysisResult. An empty projection gives zeroed metrics and empty lists.
    """
    cfg = config or DEFAULT_CONFIG
    rf = cfg.risk_free_rate if risk_free_rate is None else risk_free_rate

    if not projection:
        return RiskAnalysisResult()

    returns = monthly_returns(projection)
    volatility = population_std(returns)
    max_dd, periods = drawdowns(projection, cfg.drawdown_recovery_band)
    latest = projection[-1].value

    metrics = RiskMetrics(
        sharpe_ratio=sharpe_ratio(returns, rf),
        sortino_ratio=sortino_ratio(returns, rf),
        max_drawdown=max_dd,
        volatility=volatility,
        rolling_returns=rolling_returns(projection),
        value_at_risk=value_at_risk(returns, latest, cfg.var_confidence),
        conditional_value_at_risk=conditional_value_at_risk(returns, latest, cfg.var_confidence),
    )
    logger.debug(
        "Risk: vol=%.4f maxDD=%.4f sharpe=%.3f over %d returns",
        volatility, max_dd, metrics.sharpe_ratio, returns.size,
    )
    return RiskAnalysisResult(
        metrics=metrics,
        risk_adjusted_projection=risk_adjusted_projection(
            projection, volatility, cfg.risk_adjustment_weight
        ),
        drawdown_periods=periods,
    )


def risk_rating(metrics: RiskMetrics) -> RiskRating:
    """
    Composite score = 0.4 * volatility% + 0.4 * max drawdown% + 20 * (5 - min(Sharpe, 5)).
    Below 30 is Low, below 60 Medium, below 80 High, otherwise Very High.
    """
    score = (
        metrics.volatility * 100.0 * 0.4
        + metrics.max_drawdown * 100.0 * 0.4
        + (5.0 - min(metrics.sharpe_ratio, 5.0)) * 20.0
    )
    if score < 30:
        rating = "Low"
    elif score < 60:
        rating = "Medium"
    elif score < 80:
        rating = "High"
    else:
        rating = "Very High"
    return RiskRating(rating=rating, description=RATING_DESCRIPTIONS[rating], score=score)


def format_risk_metrics(metrics: RiskMetrics) -> Dict[str, str]:
    return {
        "sharpe_ratio": f"{metrics.sharpe_ratio:.2f}",
        "sortino_ratio": f"{metrics.sortino_ratio:.2f}",
        "max_drawdown": f"{metrics.max_drawdown * 100:.1f}%",
        "volatility": f"{metrics.volatility * 100:.1f}%",
        "value_at_risk": f"{metrics.value_at_risk:.0f}",
        "conditional_value_at_risk": f"{metrics.conditional_value_at_risk:.0f}",
    }
