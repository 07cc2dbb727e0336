"""
Engine configuration.

Heuristic constants used across the projection, simulation, risk and sampling
layers live here so callers can tune them without touching the numerics.
Distribution parameters for the Monte Carlo layer live in MonteCarloParams.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

CompoundingConvention = Literal["geometric", "simple"]


@dataclass(frozen=True)
class EngineConfig:
    # monthly rate derived from the annual return, applied by every generator
    compounding: CompoundingConvention = "geometric"

    # Monte Carlo
    max_simulations: int = 2000

    # risk analysis
    risk_free_rate: float = 0.02
    var_confidence: float = 0.95
    drawdown_recovery_band: float = 0.01
    risk_adjustment_weight: float = 0.5

    # seasonal pattern strength = consistency * w1 + (1 - dispersion) * w2
    pattern_consistency_weight: float = 0.7
    pattern_dispersion_weight: float = 0.3

    # scenario analysis
    scenario_return_band: float = 0.02

    # worker dispatch
    dispatch_timeout_seconds: float = 30.0
    dispatch_max_workers: int = 2

    def __post_init__(self):
        if self.compounding not in ("geometric", "simple"):
            raise ValueError(f"Unknown compounding convention: {self.compounding!r}")
        if self.max_simulations < 1:
            raise ValueError("max_simulations must be at least 1")
        if not 0.0 < self.var_confidence < 1.0:
            raise ValueError("var_confidence must be in (0, 1)")
        if self.drawdown_recovery_band < 0:
            raise ValueError("drawdown_recovery_band must be non-negative")
        if self.dispatch_timeout_seconds <= 0:
            raise ValueError("dispatch_timeout_seconds must be positive")


@dataclass(frozen=True)
class MonteCarloParams:
    """
    Parameters for one Monte Carlo run.

    volatility is the annualized standard deviation of returns (0.15 is a
    typical equity figure). confidence_levels are read as the p10 / p50 / p90
    bands, in that order.
    """
    num_simulations: int = 1000
    volatility: float = 0.15
    confidence_levels: Tuple[float, float, float] = (0.10, 0.50, 0.90)

    def __post_init__(self):
        if self.num_simulations < 1:
            raise ValueError("num_simulations must be at least 1")
        if self.volatility < 0:
            raise ValueError("volatility must be non-negative")
        if len(self.confidence_levels) != 3:
            raise ValueError("confidence_levels must hold exactly three levels (p10, p50, p90)")
        for level in self.confidence_levels:
            if not 0.0 <= level <= 1.0:
                raise ValueError(f"confidence level {level} outside [0, 1]")


@dataclass(frozen=True)
class SamplingConfig:
    target_points: int = 300
    min_points: int = 50
    adaptive_target_points: int = 400

    # strategy selection thresholds
    no_sampling_max_points: int = 300
    lttb_min_points: int = 1000
    high_volatility_threshold: float = 0.10
    should_sample_threshold: int = 500

    # adaptive sampling
    volatility_window: int = 5
    volatility_floor: float = 0.1

    def __post_init__(self):
        if self.target_points < 3:
            raise ValueError("target_points must be at least 3")
        if self.min_points < 3:
            raise ValueError("min_points must be at least 3")


DEFAULT_CONFIG = EngineConfig()
DEFAULT_SAMPLING = SamplingConfig()
