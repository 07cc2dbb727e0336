"""
Downsampling of long time series for display budgets.

Works on any sequence of records exposing `.date` ("YYYY-MM" or an ISO date)
and `.value`: ProjectionPoint, ExtendedProjectionPoint, or anything shaped
like them. Samplers never mutate their input and return a new list; input that
already fits the budget comes back unchanged (as a copy).

Strategies
----------
lttb      Largest-Triangle-Three-Buckets, shape preserving.
smart     first/last + local extrema + evenly spaced fill.
adaptive  denser where the series is locally volatile.
zoom      smart sampling of a visible index window, budget grows with zoom.
"""

from __future__ import annotations

import logging
import math
from typing import List, NamedTuple, Optional, Protocol, Sequence, Tuple, TypeVar, Union

import numpy as np

from core.config import DEFAULT_SAMPLING, SamplingConfig
from core.utils import epoch_seconds

logger = logging.getLogger(__name__)


class Datum(Protocol):
    date: str
    value: float


T = TypeVar("T", bound=Datum)


class IndexRange(NamedTuple):
    start_index: int
    end_index: int  # inclusive


class SamplingStrategy(NamedTuple):
    method: str  # none | lttb | smart | adaptive | zoom
    target_points: int


METHODS = ("none", "lttb", "smart", "adaptive", "zoom")

RangeLike = Union[IndexRange, Tuple[int, int]]


def _values(data: Sequence[Datum]) -> np.ndarray:
    return np.array([d.value for d in data], dtype=float)


def _ends(data: Sequence[T], max_points: int) -> List[T]:
    """First and last point, cut down to a budget below 2."""
    return [data[0], data[-1]][:max(0, max_points)]


# ---------------------------------------------------------------------------
# LTTB
# ---------------------------------------------------------------------------

def lttb_sample(
    data: Sequence[T],
    target_points: int = 300,
    min_points: int = 50,
    preserve_start_end: bool = True,
) -> List[T]:
    """
    Largest-Triangle-Three-Buckets.

    The points between the ends are split into (threshold - 2) buckets. Walking
    left to right, each bucket keeps the point forming the largest triangle with
    the previously kept point and the average of the next bucket. x is the date
    in epoch seconds, y the value.

    threshold = max(min_points, target_points), never more than len(data).
    """
    n = len(data)
    threshold = min(n, max(min_points, target_points))
    if n <= target_points or threshold >= n:
        return list(data)
    if threshold < 3:
        return _ends(data, threshold) if preserve_start_end else list(data[:threshold])

    x = epoch_seconds(d.date for d in data)
    y = _values(data)

    if preserve_start_end:
        lo, hi, n_buckets = 1, n - 1, threshold - 2
    else:
        lo, hi, n_buckets = 0, n, threshold
    bounds = np.floor(np.linspace(lo, hi, n_buckets + 1)).astype(int)

    selected = [0] if preserve_start_end else []
    ax, ay = x[0], y[0]
    for k in range(n_buckets):
        start, end = bounds[k], bounds[k + 1]
        if k + 1 < n_buckets:
            nxt_start, nxt_end = bounds[k + 1], bounds[k + 2]
            cx, cy = x[nxt_start:nxt_end].mean(), y[nxt_start:nxt_end].mean()
        else:
            cx, cy = x[-1], y[-1]

        bx, by = x[start:end], y[start:end]
        area = np.abs((ax - cx) * (by - ay) - (ax - bx) * (cy - ay)) * 0.5
        pick = start + int(np.argmax(area))
        selected.append(pick)
        ax, ay = x[pick], y[pick]

    if preserve_start_end:
        selected.append(n - 1)
    return [data[i] for i in selected]


# ---------------------------------------------------------------------------
# Smart
# ---------------------------------------------------------------------------

def _local_extrema(values: np.ndarray) -> List[int]:
    """Strict local maxima/minima; the two indices after each hit are skipped."""
    out = []
    i = 1
    n = len(values)
    while i < n - 1:
        prev, curr, nxt = values[i - 1], values[i], values[i + 1]
        if (curr > prev and curr > nxt) or (curr < prev and curr < nxt):
            out.append(i)
            i += 3
        else:
            i += 1
    return out


def smart_sample(data: Sequence[T], max_points: int = 300) -> List[T]:
    """
    Keep first and last, every strict local extremum, then fill the rest of
    the budget with evenly spaced interior points whose date is not already in.
    If there are more extrema than the budget allows they are thinned evenly.
    Output keeps input order.
    """
    n = len(data)
    if n <= max_points:
        return list(data)
    if max_points <= 2:
        return _ends(data, max_points)

    budget = max_points - 2
    extrema = _local_extrema(_values(data))

    if len(extrema) >= budget:
        keep = np.unique(np.round(np.linspace(0, len(extrema) - 1, budget)).astype(int))
        chosen = [extrema[k] for k in keep]
    else:
        chosen = list(extrema)
        seen = {data[0].date, data[-1].date}
        seen.update(data[i].date for i in chosen)
        remaining = budget - len(chosen)
        spacing = max(1, (n - 2) // remaining)
        for i in range(1, n - 1, spacing):
            if len(chosen) >= budget:
                break
            if data[i].date in seen:
                continue
            chosen.append(i)
            seen.add(data[i].date)

    return [data[0]] + [data[i] for i in sorted(chosen)] + [data[-1]]


# ---------------------------------------------------------------------------
# Adaptive
# ---------------------------------------------------------------------------

def _volatility_scores(values: np.ndarray, window: int) -> np.ndarray:
    """Population std of values[i-window : i+window] for i = 1..n-1."""
    n = len(values)
    scores = np.zeros(n - 1, dtype=float)
    for i in range(1, n):
        start, end = max(0, i - window), min(i + window, n - 1)
        if end - start <= 1:
            continue
        scores[i - 1] = np.std(values[start:end + 1])
    return scores


def adaptive_sample(
    data: Sequence[T],
    max_points: int = 300,
    *,
    config: Optional[SamplingConfig] = None,
) -> List[T]:
    """
    Sample densely where the series moves and sparsely where it is flat.

    Each index gets weight sqrt(local_std / max(max_std, floor)); the target
    count of thresholds is spread evenly over the cumulative weight and each
    threshold selects the first index whose cumulative weight reaches it.
    A series with no local movement at all falls back to smart sampling.
    """
    cfg = config or DEFAULT_SAMPLING
    n = len(data)
    if n <= max_points:
        return list(data)
    if max_points <= 2:
        return _ends(data, max_points)

    scores = _volatility_scores(_values(data), cfg.volatility_window)
    weights = np.sqrt(scores / max(scores.max(), cfg.volatility_floor))
    total = float(weights.sum())
    if total <= 0:
        return smart_sample(data, max_points)

    k = max_points - 2
    cumulative = np.cumsum(weights)
    targets = np.arange(1, k + 1) / k * total
    pos = np.minimum(np.searchsorted(cumulative, targets, side="left"), len(weights) - 1)
    picks = np.minimum(pos + 1, n - 2)

    chosen = []
    seen = {data[0].date, data[-1].date}
    for i in picks:
        if data[i].date in seen:
            continue
        chosen.append(int(i))
        seen.add(data[i].date)

    return [data[0]] + [data[i] for i in sorted(chosen)] + [data[-1]]


# ---------------------------------------------------------------------------
# Zoom
# ---------------------------------------------------------------------------

def zoom_budget(total: int, visible: int, max_points: int = 300, min_points: int = 50) -> int:
    zoom = 1.0 - visible / total
    return max(min_points, min(max_points, int(math.floor(max_points * (0.5 + 0.5 * zoom)))))


def zoom_sample(
    data: Sequence[T],
    visible_range: RangeLike,
    max_points: int = 300,
    *,
    config: Optional[SamplingConfig] = None,
) -> List[T]:
    """Smart-sample only the visible window; the narrower the window, the larger the budget."""
    cfg = config or DEFAULT_SAMPLING
    n = len(data)
    if n <= max_points:
        return list(data)

    start, end = int(visible_range[0]), int(visible_range[1])
    start, end = max(0, start), min(n - 1, end)
    if end < start:
        return []

    budget = zoom_budget(n, end - start + 1, max_points, cfg.min_points)
    return smart_sample(data[start:end + 1], budget)


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------

def mean_abs_change(data: Sequence[Datum]) -> float:
    """Mean |relative change| between consecutive values; steps from 0 count as 0."""
    values = _values(data)
    if len(values) <= 1:
        return 0.0
    prev, curr = values[:-1], values[1:]
    with np.errstate(divide="ignore", invalid="ignore"):
        changes = np.where(prev != 0, np.abs((curr - prev) / prev), 0.0)
    return float(changes.mean())


def recommend_strategy(
    data: Sequence[Datum],
    visible_range: Optional[RangeLike] = None,
    *,
    config: Optional[SamplingConfig] = None,
) -> SamplingStrategy:
    cfg = config or DEFAULT_SAMPLING
    n = len(data)
    if n <= cfg.no_sampling_max_points:
        return SamplingStrategy("none", n)
    if visible_range is not None:
        return SamplingStrategy("zoom", cfg.target_points)
    if mean_abs_change(data) > cfg.high_volatility_threshold:
        return SamplingStrategy("adaptive", cfg.adaptive_target_points)
    if n > cfg.lttb_min_points:
        return SamplingStrategy("lttb", cfg.target_points)
    return SamplingStrategy("smart", cfg.target_points)


def sample(
    data: Sequence[T],
    target_points: Optional[int] = None,
    strategy: Optional[str] = None,
    visible_range: Optional[RangeLike] = None,
    *,
    config: Optional[SamplingConfig] = None,
) -> List[T]:
    """
    Downsample with an explicit strategy, or the recommended one when strategy is None.

    Raises ValueError for an unknown strategy name, or for "zoom" without a range.
    """
    cfg = config or DEFAULT_SAMPLING
    if strategy is None:
        rec = recommend_strategy(data, visible_range, config=cfg)
        strategy = rec.method
        budget = target_points or rec.target_points
    else:
        budget = target_points or cfg.target_points

    if strategy not in METHODS:
        raise ValueError(f"Unknown sampling strategy {strategy!r}; expected one of {METHODS}")

    logger.debug("Sampling %d points with %s (budget %d)", len(data), strategy, budget)
    if strategy == "none":
        return list(data)
    if strategy == "lttb":
        return lttb_sample(data, budget, cfg.min_points)
    if strategy == "smart":
        return smart_sample(data, budget)
    if strategy == "adaptive":
        return adaptive_sample(data, budget, config=cfg)
    if visible_range is None:
        raise ValueError("zoom sampling needs a visible_range")
    return zoom_sample(data, visible_range, budget, config=cfg)


def should_sample(data: Sequence[Datum], threshold: Optional[int] = None) -> bool:
    limit = DEFAULT_SAMPLING.should_sample_threshold if threshold is None else threshold
    return len(data) > limit
