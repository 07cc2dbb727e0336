"""
Off-thread execution of engine requests.

Callers that must not block (a UI thread, a request handler) submit work to an
EngineDispatcher, which runs the same pure functions on a thread pool and
answers with an EngineResponse. Failures never raise across this boundary:
timeouts, unknown request types, bad payloads and handler exceptions all come
back as `response.error`.

    with EngineDispatcher() as engine:
        resp = engine.call_with_fallback("projection-data", {"goal": goal, "current_net_worth": 0})
        points = resp.result

Request types and payload keys
------------------------------
projection-data      goal, current_net_worth
monte-carlo          goal, current_net_worth, params?, seed?
scenario-analysis    goal, current_net_worth, scenarios?
time-based-analysis  projection
risk-analysis        projection, risk_free_rate?
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from analytics.risk import analyze_risk
from analytics.timeseries import analyze_time_series
from core.config import DEFAULT_CONFIG, EngineConfig, MonteCarloParams
from core.schema import Goal, ProjectionPoint, Scenario
from distributions.random_source import default_source

from .montecarlo import run_monte_carlo
from .projection import generate_projection
from .scenarios import run_scenarios

logger = logging.getLogger(__name__)

REQUEST_TYPES = (
    "projection-data",
    "monte-carlo",
    "scenario-analysis",
    "time-based-analysis",
    "risk-analysis",
)


def new_request_id() -> str:
    return uuid.uuid4().hex


# --- Messages ---

class EngineRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str = Field(default_factory=new_request_id)
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class EngineResponse(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    type: str
    result: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# --- Payloads (validated per request type) ---

class _Payload(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")


class GoalPayload(_Payload):
    goal: Goal
    current_net_worth: float


class MonteCarloPayload(GoalPayload):
    params: Optional[MonteCarloParams] = None
    seed: Optional[int] = None


class ScenarioPayload(GoalPayload):
    scenarios: Optional[List[Scenario]] = None


class SeriesPayload(_Payload):
    projection: List[ProjectionPoint]


class RiskPayload(SeriesPayload):
    risk_free_rate: Optional[float] = None


# --- Handlers ---

Handler = Callable[[Mapping[str, Any], EngineConfig], Any]


def _projection(data, config):
    p = GoalPayload.model_validate(data)
    return generate_projection(p.goal, p.current_net_worth, config=config)


def _monte_carlo(data, config):
    p = MonteCarloPayload.model_validate(data)
    return run_monte_carlo(
        p.goal, p.current_net_worth, p.params,
        random_source=default_source(p.seed), config=config,
    )


def _scenarios(data, config):
    p = ScenarioPayload.model_validate(data)
    return run_scenarios(p.goal, p.current_net_worth, p.scenarios, config=config)


def _time_series(data, config):
    p = SeriesPayload.model_validate(data)
    return analyze_time_series(p.projection, config=config)


def _risk(data, config):
    p = RiskPayload.model_validate(data)
    return analyze_risk(p.projection, p.risk_free_rate, config=config)


HANDLERS: Dict[str, Handler] = {
    "projection-data": _projection,
    "monte-carlo": _monte_carlo,
    "scenario-analysis": _scenarios,
    "time-based-analysis": _time_series,
    "risk-analysis": _risk,
}


def handle_request(
    request: EngineRequest,
    handlers: Optional[Mapping[str, Handler]] = None,
    config: Optional[EngineConfig] = None,
) -> EngineResponse:
    """Run one request synchronously and wrap the outcome (result or error)."""
    table = HANDLERS if handlers is None else handlers
    handler = table.get(request.type)
    if handler is None:
        return EngineResponse(
            id=request.id, type=request.type, error=f"Unknown request type: {request.type!r}"
        )
    try:
        result = handler(request.data, config or DEFAULT_CONFIG)
    except ValidationError as exc:
        logger.warning("Invalid %s payload: %s", request.type, exc)
        return EngineResponse(id=request.id, type=request.type, error=f"Invalid payload: {exc}")
    except Exception as exc:
        logger.exception("Handler for %s failed", request.type)
        return EngineResponse(id=request.id, type=request.type, error=f"{type(exc).__name__}: {exc}")
    return EngineResponse(id=request.id, type=request.type, result=result)


class EngineDispatcher:
    """
    Thread-pool front end for the engine.

    Parameters
    ----------
    max_workers : int, optional
        Pool size; defaults to config.dispatch_max_workers.
    handlers : mapping, optional
        Request type -> handler table; defaults to HANDLERS.
    config : EngineConfig, optional
        Passed to every handler; also supplies the default timeout.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        *,
        handlers: Optional[Mapping[str, Handler]] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.handlers = dict(HANDLERS if handlers is None else handlers)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or self.config.dispatch_max_workers,
            thread_name_prefix="engine",
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, request_type: str, data: Mapping[str, Any]) -> Tuple[EngineRequest, "Future[EngineResponse]"]:
        """Queue a request; the future resolves to an EngineResponse (it never raises)."""
        if self._closed:
            raise RuntimeError("EngineDispatcher is closed")
        request = EngineRequest(type=request_type, data=dict(data))
        future = self._executor.submit(handle_request, request, self.handlers, self.config)
        return request, future

    def call(
        self,
        request_type: str,
        data: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> EngineResponse:
        """
        Submit and wait. A timeout leaves the work running (there is no
        mid-computation cancellation) and answers with an error response.
        """
        wait = self.config.dispatch_timeout_seconds if timeout is None else timeout
        if self._closed:
            return EngineResponse(id=new_request_id(), type=request_type, error="EngineDispatcher is closed")

        request, future = self.submit(request_type, data)
        try:
            return future.result(timeout=wait)
        except FutureTimeoutError:
            logger.warning("%s request %s timed out after %.1fs", request_type, request.id, wait)
            return EngineResponse(
                id=request.id, type=request_type, error=f"Request timed out after {wait}s"
            )

    def call_with_fallback(
        self,
        request_type: str,
        data: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> EngineResponse:
        """Like call(), but re-runs the handler inline when the worker answer carries an error."""
        response = self.call(request_type, data, timeout)
        if response.ok:
            return response
        logger.warning("Worker failed for %s (%s); running inline", request_type, response.error)
        request = EngineRequest(id=response.id, type=request_type, data=dict(data))
        return handle_request(request, self.handlers, self.config)

    def close(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "EngineDispatcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(wait=False)
