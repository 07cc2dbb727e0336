from __future__ import annotations

from datetime import date

import numpy as np
import pytest

from sampling.sampler import (
    IndexRange,
    adaptive_sample,
    lttb_sample,
    mean_abs_change,
    recommend_strategy,
    sample,
    should_sample,
    smart_sample,
    zoom_budget,
    zoom_sample,
)
from tests.helpers import make_series

EARLY = date(1880, 1, 1)


def ramp(n: int):
    return make_series([float(i + 1) for i in range(n)], start=EARLY)


def zigzag(n: int, low: float = 100.0, high: float = 200.0):
    return make_series([high if i % 2 else low for i in range(n)], start=EARLY)


def noisy(n: int, seed: int = 0):
    rng = np.random.default_rng(seed)
    return make_series(list(1_000 + np.cumsum(rng.normal(0, 25, n))), start=EARLY)


def assert_subsequence(sampled, data):
    positions = [data.index(p) for p in sampled]
    assert positions == sorted(positions)
    assert len(set(positions)) == len(positions)


@pytest.mark.parametrize("sampler", [lttb_sample, smart_sample, adaptive_sample])
def test_small_input_returned_unchanged(sampler):
    data = ramp(300)
    out = sampler(data)
    assert out == data
    assert out is not data


def test_smart_sampling_linear_ramp():
    data = ramp(1_000)
    out = smart_sample(data, max_points=300)
    assert len(out) <= 300
    assert out[0] is data[0]
    assert out[-1] is data[-1]
    assert_subsequence(out, data)
    # no extrema, so the interior is evenly spaced
    gaps = {data.index(b) - data.index(a) for a, b in zip(out[1:-2], out[2:-1])}
    assert len(gaps) == 1


def test_smart_sampling_thins_dense_extrema():
    data = zigzag(1_000)
    out = smart_sample(data, max_points=300)
    assert len(out) <= 300
    assert out[0] is data[0] and out[-1] is data[-1]
    assert_subsequence(out, data)


def test_lttb_keeps_ends_and_budget():
    data = noisy(1_500)
    out = lttb_sample(data, target_points=300)
    assert len(out) == 300
    assert out[0] is data[0]
    assert out[-1] is data[-1]
    assert_subsequence(out, data)


def test_lttb_picks_the_spike():
    values = [1.0] * 1_000
    values[500] = 1_000.0
    data = make_series(values, start=EARLY)
    out = lttb_sample(data, target_points=100, min_points=10)
    assert data[500] in out


def test_lttb_respects_min_points():
    data = ramp(100)
    assert len(lttb_sample(data, target_points=20, min_points=50)) == 50


def test_adaptive_sampling():
    data = noisy(2_000)
    out = adaptive_sample(data, max_points=400)
    assert len(out) <= 400
    assert out[0] is data[0] and out[-1] is data[-1]
    assert len({p.date for p in out}) == len(out)
    assert_subsequence(out, data)


def test_adaptive_flat_series_falls_back_to_smart():
    data = make_series([5.0] * 800, start=EARLY)
    out = adaptive_sample(data, max_points=300)
    assert out == smart_sample(data, max_points=300)


def test_zoom_budget_grows_as_window_shrinks():
    assert zoom_budget(1_000, 1_000) == 150
    assert zoom_budget(1_000, 100) == 285
    assert zoom_budget(1_000, 1_000, max_points=60) == 50


def test_zoom_sampling_returns_visible_window():
    data = ramp(1_000)
    out = zoom_sample(data, IndexRange(100, 199))
    assert out == data[100:200]

    whole = zoom_sample(data, (0, 999))
    assert len(whole) <= 150
    assert whole[0] is data[0] and whole[-1] is data[-1]


def test_recommended_strategy():
    assert recommend_strategy(ramp(300)).method == "none"
    assert recommend_strategy(ramp(500), IndexRange(0, 10)) == ("zoom", 300)
    assert recommend_strategy(zigzag(600)) == ("adaptive", 400)
    assert recommend_strategy(ramp(1_500)) == ("lttb", 300)
    assert recommend_strategy(ramp(800)) == ("smart", 300)


def test_mean_abs_change_ignores_zero_bases():
    data = make_series([0.0, 10.0, 20.0], start=EARLY)
    assert mean_abs_change(data) == pytest.approx(0.5)


def test_sample_dispatch():
    data = ramp(1_500)
    assert len(sample(data)) == 300
    assert len(sample(data, strategy="smart", target_points=100)) <= 100
    assert sample(data, strategy="none") == data
    with pytest.raises(ValueError):
        sample(data, strategy="wavelet")
    with pytest.raises(ValueError):
        sample(data, strategy="zoom")


def test_should_sample_threshold():
    assert should_sample(ramp(501))
    assert not should_sample(ramp(500))
    assert should_sample(ramp(20), threshold=10)


@pytest.mark.parametrize("sampler", [smart_sample, adaptive_sample])
def test_tiny_budgets_are_respected(sampler):
    data = noisy(600)
    assert sampler(data, max_points=2) == [data[0], data[-1]]
    assert sampler(data, max_points=1) == [data[0]]
    assert sampler(data, max_points=0) == []


def test_lttb_tiny_threshold():
    data = noisy(600)
    assert lttb_sample(data, target_points=1, min_points=1) == [data[0]]
    assert lttb_sample(data, target_points=2, min_points=2) == [data[0], data[-1]]
