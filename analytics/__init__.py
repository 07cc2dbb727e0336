"""
Analytics on projection series: risk statistics and calendar analytics.
"""

from .risk import (
    DrawdownPeriod,
    RiskAnalysisResult,
    RiskMetrics,
    RiskRating,
    analyze_risk,
    format_risk_metrics,
    risk_rating,
)
from .timeseries import (
    SeasonalPattern,
    TimeBasedAnalysisResult,
    YoYComparison,
    analyze_time_series,
)

__all__ = [
    "DrawdownPeriod",
    "RiskAnalysisResult",
    "RiskMetrics",
    "RiskRating",
    "analyze_risk",
    "format_risk_metrics",
    "risk_rating",
    "SeasonalPattern",
    "TimeBasedAnalysisResult",
    "YoYComparison",
    "analyze_time_series",
]
