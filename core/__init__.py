"""
Core package: value types, configuration, and shared numeric/date helpers.
No projection logic lives here.
"""

from .schema import (
    PROJECTION_COLUMNS,
    EXTENDED_COLUMNS,
    Goal,
    ProjectionPoint,
    ExtendedProjectionPoint,
    Scenario,
    Transaction,
    projection_to_frame,
)
from .config import DEFAULT_CONFIG, DEFAULT_SAMPLING, EngineConfig, MonteCarloParams, SamplingConfig
from .utils import monthly_rate, month_key, parse_date, round_half_away, total_months

__all__ = [
    "PROJECTION_COLUMNS",
    "EXTENDED_COLUMNS",
    "Goal",
    "ProjectionPoint",
    "ExtendedProjectionPoint",
    "Scenario",
    "Transaction",
    "projection_to_frame",
    "DEFAULT_CONFIG",
    "DEFAULT_SAMPLING",
    "EngineConfig",
    "MonteCarloParams",
    "SamplingConfig",
    "monthly_rate",
    "month_key",
    "parse_date",
    "round_half_away",
    "total_months",
]
