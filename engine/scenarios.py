"""
Scenario analysis: the same plan projected under shifted return assumptions.

Each scenario re-runs the deterministic generator with
annual_return + return_adjustment. Runs share nothing, so the order of the
scenario list has no effect on any projection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from core.config import EngineConfig
from core.schema import Goal, ProjectionPoint, Scenario, projection_to_frame

from .projection import generate_projection

logger = logging.getLogger(__name__)

DEFAULT_SCENARIOS = (
    Scenario(
        id="base",
        name="Base Case",
        return_adjustment=0.0,
        description="Your original plan with expected returns",
    ),
    Scenario(
        id="optimistic",
        name="Optimistic",
        return_adjustment=0.02,
        description="Higher returns scenario (+2% annual return)",
    ),
    Scenario(
        id="pessimistic",
        name="Pessimistic",
        return_adjustment=-0.02,
        description="Lower returns scenario (-2% annual return)",
    ),
)


def default_scenarios() -> List[Scenario]:
    """Fresh list of the base / optimistic / pessimistic scenarios."""
    return list(DEFAULT_SCENARIOS)


@dataclass
class ScenarioAnalysisResult:
    scenarios: Dict[str, List[ProjectionPoint]] = field(default_factory=dict)

    @property
    def base(self) -> List[ProjectionPoint]:
        return self.scenarios.get("base", [])

    @property
    def optimistic(self) -> List[ProjectionPoint]:
        return self.scenarios.get("optimistic", [])

    @property
    def pessimistic(self) -> List[ProjectionPoint]:
        return self.scenarios.get("pessimistic", [])

    def final_values(self) -> Dict[str, float]:
        """Last projected value per scenario (scenarios with no points are left out)."""
        return {sid: points[-1].value for sid, points in self.scenarios.items() if points}

    def to_dataframe(self) -> pd.DataFrame:
        """Long format: one row per (scenario, month)."""
        frames = []
        for sid, points in self.scenarios.items():
            df = projection_to_frame(points)
            df.insert(0, "scenario", sid)
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=["scenario"])
        return pd.concat(frames, ignore_index=True)


def run_scenarios(
    goal: Goal,
    current_net_worth: float,
    scenarios: Optional[Sequence[Scenario]] = None,
    *,
    active_only: bool = False,
    config: Optional[EngineConfig] = None,
) -> ScenarioAnalysisResult:
    """
    Project the goal once per scenario, keyed by scenario id.

    Ids missing from the list simply leave the matching accessor empty. With
    active_only, scenarios whose is_active flag is off are not run.
    """
    chosen = list(scenarios) if scenarios is not None else default_scenarios()
    result = ScenarioAnalysisResult()
    for scenario in chosen:
        if active_only and not scenario.is_active:
            continue
        adjusted = goal.with_return(goal.annual_return + scenario.return_adjustment)
        result.scenarios[scenario.id] = generate_projection(adjusted, current_net_worth, config=config)
        logger.debug(
            "Scenario %s: return %.4f, %d points",
            scenario.id, adjusted.annual_return, len(result.scenarios[scenario.id]),
        )
    return result
