"""
Random sources for the Monte Carlo layer.

Simulations never call a global generator directly. They ask an injected
RandomSource for uniform draws and turn those into standard normals with the
Box-Muller transform, so a seeded source reproduces every percentile band
exactly:

    source = NumpyRandomSource(seed=42)
    z = standard_normal(source, (1000, 324))   # 1000 paths x 324 months

Unseeded sources draw from system entropy.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple, Union

import numpy as np

Shape = Union[int, Tuple[int, ...]]


class RandomSource(Protocol):
    """Anything that can hand out uniform draws in the half-open interval (0, 1]."""

    def uniform(self, shape: Shape) -> np.ndarray:
        ...


class NumpyRandomSource:
    """
    RandomSource backed by numpy's PCG64 Generator.

    Usage:
        source = NumpyRandomSource(seed=7)
        u = source.uniform((2, 12))
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def uniform(self, shape: Shape) -> np.ndarray:
        # Generator.random() is [0, 1); flip it so log(u) is always finite.
        return 1.0 - self.rng.random(shape)

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed})"


class SequenceRandomSource:
    """
    Replays a fixed list of uniforms, cycling when exhausted.
    Meant for tests that need hand-checkable draws.
    """

    def __init__(self, values: Sequence[float]):
        if not values:
            raise ValueError("SequenceRandomSource needs at least one value.")
        for v in values:
            if not 0.0 < v <= 1.0:
                raise ValueError(f"Uniform draw {v} outside (0, 1].")
        self.values = np.asarray(values, dtype=float)
        self._pos = 0

    def uniform(self, shape: Shape) -> np.ndarray:
        n = int(np.prod(shape))
        idx = (self._pos + np.arange(n)) % len(self.values)
        self._pos = (self._pos + n) % len(self.values)
        return self.values[idx].reshape(shape)


def standard_normal(source: RandomSource, shape: Shape) -> np.ndarray:
    """
    Standard normal draws via Box-Muller: two independent uniforms per sample.

    z = sqrt(-2 ln u) * cos(2 pi v)
    """
    u = source.uniform(shape)
    v = source.uniform(shape)
    return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)


def default_source(seed: Optional[int] = None) -> RandomSource:
    return NumpyRandomSource(seed)
