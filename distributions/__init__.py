"""
Distributions package: injectable randomness for stochastic projections.

  random_source.py - RandomSource protocol, numpy-backed and replay sources,
                     Box-Muller standard normal draws
"""

from .random_source import (
    NumpyRandomSource,
    RandomSource,
    SequenceRandomSource,
    default_source,
    standard_normal,
)

__all__ = [
    "NumpyRandomSource",
    "RandomSource",
    "SequenceRandomSource",
    "default_source",
    "standard_normal",
]
