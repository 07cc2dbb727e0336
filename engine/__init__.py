"""
Projection engine: deterministic month-by-month projection, goal calculators,
scenario variants, Monte Carlo bands, actual-vs-projected merge, and a thread
pool dispatcher that serves all of them.
"""

from .projection import generate_projection
from .goals import (
    RequiredContribution,
    YearsToGoal,
    calculate_goal_amount,
    required_contributions,
    years_to_goal,
)
from .scenarios import DEFAULT_SCENARIOS, ScenarioAnalysisResult, default_scenarios, run_scenarios
from .montecarlo import MonteCarloSimulator, SimulationResult, run_monte_carlo, success_probability
from .merger import (
    contributions_by_month,
    cumulative_actual_contributions,
    merge_projected_with_actual,
    total_contributions,
)
from .dispatch import EngineDispatcher, EngineRequest, EngineResponse, handle_request

__all__ = [
    "generate_projection",
    "RequiredContribution",
    "YearsToGoal",
    "calculate_goal_amount",
    "required_contributions",
    "years_to_goal",
    "DEFAULT_SCENARIOS",
    "ScenarioAnalysisResult",
    "default_scenarios",
    "run_scenarios",
    "MonteCarloSimulator",
    "SimulationResult",
    "run_monte_carlo",
    "success_probability",
    "contributions_by_month",
    "cumulative_actual_contributions",
    "merge_projected_with_actual",
    "total_contributions",
    "EngineDispatcher",
    "EngineRequest",
    "EngineResponse",
    "handle_request",
]
