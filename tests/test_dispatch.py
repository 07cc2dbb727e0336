from __future__ import annotations

import re
import threading

import numpy as np
import pytest

from core.config import MonteCarloParams
from distributions.random_source import NumpyRandomSource
from engine.dispatch import (
    HANDLERS,
    REQUEST_TYPES,
    EngineDispatcher,
    EngineRequest,
    handle_request,
    new_request_id,
)
from engine.montecarlo import run_monte_carlo
from engine.projection import generate_projection


@pytest.fixture()
def dispatcher():
    engine = EngineDispatcher(max_workers=2)
    yield engine
    engine.close()


def test_every_request_type_has_a_handler():
    assert set(HANDLERS) == set(REQUEST_TYPES)


def test_projection_request(dispatcher, short_goal):
    resp = dispatcher.call("projection-data", {"goal": short_goal, "current_net_worth": 1_000})
    assert resp.ok
    assert resp.type == "projection-data"
    assert resp.result == generate_projection(short_goal, 1_000)


def test_seeded_monte_carlo_matches_direct_run(dispatcher, short_goal):
    params = MonteCarloParams(num_simulations=50)
    resp = dispatcher.call(
        "monte-carlo",
        {"goal": short_goal, "current_net_worth": 0, "params": params, "seed": 42},
    )
    assert resp.ok
    direct = run_monte_carlo(short_goal, 0, params, random_source=NumpyRandomSource(seed=42))
    assert np.array_equal(resp.result.path_values, direct.path_values)


def test_scenario_and_analysis_requests(dispatcher, short_goal):
    scen = dispatcher.call("scenario-analysis", {"goal": short_goal, "current_net_worth": 0})
    assert scen.ok
    assert set(scen.result.scenarios) == {"base", "optimistic", "pessimistic"}

    projection = scen.result.base
    risk = dispatcher.call("risk-analysis", {"projection": projection, "risk_free_rate": 0.03})
    assert risk.ok
    assert risk.result.metrics.volatility >= 0

    ts = dispatcher.call("time-based-analysis", {"projection": projection})
    assert ts.ok
    assert [c.year for c in ts.result.year_over_year] == [2024, 2025]


def test_unknown_request_type(dispatcher):
    resp = dispatcher.call("tax-report", {})
    assert not resp.ok
    assert resp.result is None
    assert "Unknown request type" in resp.error


def test_invalid_payload(dispatcher):
    resp = dispatcher.call("projection-data", {"goal": "retire early", "current_net_worth": 0})
    assert not resp.ok
    assert resp.error.startswith("Invalid payload")


def test_handler_exception_becomes_error():
    def broken(data, config):
        raise ZeroDivisionError("boom")

    resp = handle_request(EngineRequest(type="boom"), {"boom": broken})
    assert resp.error == "ZeroDivisionError: boom"


def test_timeout_returns_error():
    release = threading.Event()

    def slow(data, config):
        release.wait(5)
        return "late"

    engine = EngineDispatcher(max_workers=1, handlers={"slow": slow})
    try:
        resp = engine.call("slow", {}, timeout=0.05)
        assert not resp.ok
        assert resp.error == "Request timed out after 0.05s"
    finally:
        release.set()
        engine.close()


def test_fallback_runs_inline_when_worker_fails():
    def worker_hostile(data, config):
        if threading.current_thread().name.startswith("engine"):
            raise RuntimeError("no workers here")
        return 42

    with EngineDispatcher(handlers={"answer": worker_hostile}) as engine:
        assert engine.call("answer", {}).error == "RuntimeError: no workers here"
        resp = engine.call_with_fallback("answer", {})
    assert resp.ok
    assert resp.result == 42


def test_fallback_keeps_successful_worker_answer():
    calls = []

    def counted(data, config):
        calls.append(threading.current_thread().name)
        return len(calls)

    with EngineDispatcher(handlers={"count": counted}) as engine:
        resp = engine.call_with_fallback("count", {})
    assert resp.result == 1
    assert len(calls) == 1


def test_closed_dispatcher():
    engine = EngineDispatcher()
    engine.close()
    assert engine.closed
    assert engine.call("projection-data", {}).error == "EngineDispatcher is closed"
    with pytest.raises(RuntimeError):
        engine.submit("projection-data", {})


def test_request_ids_are_unique_hex():
    ids = {new_request_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(re.fullmatch(r"[0-9a-f]{32}", i) for i in ids)
    assert EngineRequest(type="projection-data").id != EngineRequest(type="projection-data").id


def test_closed_dispatcher_falls_back_inline():
    engine = EngineDispatcher(handlers={"ping": lambda data, config: "pong"})
    engine.close()
    resp = engine.call_with_fallback("ping", {})
    assert resp.ok
    assert resp.result == "pong"
