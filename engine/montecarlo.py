"""
Monte Carlo projection: the deterministic plan re-run under random monthly returns.

Each path draws one return per month:

    r_t = m - 0.5 * sigma^2 * dt + sigma * sqrt(dt) * Z_t,   dt = 1/12

where m is the monthly rate of the base projection (same compounding
convention) and Z_t is standard normal (Box-Muller over the injected
RandomSource). Zero volatility reproduces the base projection. Paths start
from the current net worth and follow the same deposit escalation as the base
projection; all paths advance together one month at a time.

Percentile bands are read per month from the sorted path values at index
floor(level * N), so p10 <= p50 <= p90 at every point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from core.config import DEFAULT_CONFIG, EngineConfig, MonteCarloParams
from core.schema import Goal, ProjectionPoint, projection_to_frame
from core.utils import monthly_rate, round_half_away_array
from distributions.random_source import RandomSource, default_source, standard_normal

from .projection import (
    accumulate,
    build_points,
    deposit_schedule,
    generate_projection,
    projection_dates,
)

logger = logging.getLogger(__name__)

PERCENTILE_KEYS = ("p10", "p50", "p90")
DT = 1.0 / 12.0


@dataclass
class SimulationResult:
    """
    Output of one Monte Carlo run.

    path_values holds every path's rounded month-end value, shape
    (n_paths, n_months). The per-path ProjectionPoint lists are built on first
    access to `simulations`.
    """
    base_projection: List[ProjectionPoint] = field(default_factory=list)
    percentiles: Dict[str, List[ProjectionPoint]] = field(
        default_factory=lambda: {k: [] for k in PERCENTILE_KEYS}
    )
    path_values: np.ndarray = field(default_factory=lambda: np.empty((0, 0)), repr=False)
    goal_amount: float = 0.0

    # raw arrays needed to rebuild full points per path
    _goal: Optional[Goal] = field(default=None, repr=False)
    _current_net_worth: float = field(default=0.0, repr=False)
    _deposits: Optional[np.ndarray] = field(default=None, repr=False)
    _raw_values: Optional[np.ndarray] = field(default=None, repr=False)
    _raw_returns: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def is_empty(self) -> bool:
        return len(self.base_projection) == 0

    @property
    def n_paths(self) -> int:
        return int(self.path_values.shape[0]) if self.path_values.size else 0

    @property
    def p10(self) -> List[ProjectionPoint]:
        return self.percentiles.get("p10", [])

    @property
    def p50(self) -> List[ProjectionPoint]:
        return self.percentiles.get("p50", [])

    @property
    def p90(self) -> List[ProjectionPoint]:
        return self.percentiles.get("p90", [])

    @cached_property
    def simulations(self) -> List[List[ProjectionPoint]]:
        if self.is_empty or self._raw_values is None:
            return []
        dates = projection_dates(self._goal)
        return [
            build_points(
                self._goal, self._current_net_worth, dates, self._deposits,
                self._raw_values[k], self._raw_returns[k],
            )
            for k in range(self._raw_values.shape[0])
        ]

    def to_dataframe(self) -> pd.DataFrame:
        """Base projection with the p10 / p50 / p90 values alongside."""
        df = projection_to_frame(self.base_projection)
        for key in PERCENTILE_KEYS:
            band = self.percentiles.get(key, [])
            df[key] = [p.value for p in band] if band else np.nan
        return df


def _percentile_indices(levels, n_paths: int) -> np.ndarray:
    idx = np.floor(np.asarray(levels, dtype=float) * n_paths).astype(int)
    return np.clip(idx, 0, n_paths - 1)


def run_monte_carlo(
    goal: Goal,
    current_net_worth: float,
    params: Optional[MonteCarloParams] = None,
    *,
    random_source: Optional[RandomSource] = None,
    config: Optional[EngineConfig] = None,
) -> SimulationResult:
    """
    Simulate `params.num_simulations` paths (capped at config.max_simulations).

    An empty base projection (invalid goal) gives an empty result; nothing raises.
    """
    cfg = config or DEFAULT_CONFIG
    params = params or MonteCarloParams()
    source = random_source if random_source is not None else default_source()

    base = generate_projection(goal, current_net_worth, config=cfg)
    if not base:
        return SimulationResult()

    n_paths = params.num_simulations
    if n_paths > cfg.max_simulations:
        logger.warning(
            "Requested %d simulations, capping at %d", n_paths, cfg.max_simulations
        )
        n_paths = cfg.max_simulations
    n_months = len(base)

    # --- Random monthly returns ---
    mu = goal.annual_return
    sigma = params.volatility
    z = standard_normal(source, (n_paths, n_months))
    drift = monthly_rate(mu, cfg.compounding) - 0.5 * sigma ** 2 * DT
    rates = drift + sigma * np.sqrt(DT) * z

    # --- Accumulate all paths together ---
    dates = projection_dates(goal)
    deposits = deposit_schedule(goal, dates)
    raw_values, raw_returns = accumulate(current_net_worth, deposits, rates)
    path_values = round_half_away_array(raw_values)

    # --- Percentile bands ---
    ordered = np.sort(path_values, axis=0)
    indices = _percentile_indices(params.confidence_levels, n_paths)
    percentiles: Dict[str, List[ProjectionPoint]] = {}
    for key, idx in zip(PERCENTILE_KEYS, indices):
        band_values = ordered[idx]
        percentiles[key] = [
            replace(point, value=float(v)) for point, v in zip(base, band_values)
        ]

    logger.debug(
        "Monte Carlo: %d paths x %d months, final p50=%.0f",
        n_paths, n_months, percentiles["p50"][-1].value,
    )
    return SimulationResult(
        base_projection=base,
        percentiles=percentiles,
        path_values=path_values,
        goal_amount=float(goal.amount),
        _goal=goal,
        _current_net_worth=float(current_net_worth),
        _deposits=deposits,
        _raw_values=raw_values,
        _raw_returns=raw_returns,
    )


def success_probability(result: SimulationResult) -> float:
    """Share of paths whose final value reaches the goal amount (0.0 for an empty run)."""
    if result.is_empty or result.n_paths == 0:
        return 0.0
    final = result.path_values[:, -1]
    return float(np.mean(final >= result.goal_amount))


class MonteCarloSimulator:
    """
    Holds the run parameters and random source so repeated runs share them.

    Usage:
        sim = MonteCarloSimulator(MonteCarloParams(num_simulations=500), seed=42)
        result = sim.run(goal, current_net_worth=25_000)
        print(sim.success_probability(result))
    """

    def __init__(
        self,
        params: Optional[MonteCarloParams] = None,
        *,
        seed: Optional[int] = None,
        random_source: Optional[RandomSource] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.params = params or MonteCarloParams()
        self.config = config or DEFAULT_CONFIG
        self.random_source = random_source if random_source is not None else default_source(seed)

    def run(self, goal: Goal, current_net_worth: float) -> SimulationResult:
        return run_monte_carlo(
            goal,
            current_net_worth,
            self.params,
            random_source=self.random_source,
            config=self.config,
        )

    @staticmethod
    def success_probability(result: SimulationResult) -> float:
        return success_probability(result)
