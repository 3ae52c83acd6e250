"""Random initialisation of factor matrices."""

from typing import Optional

import numpy as np

# 24 random bits per value: every draw is an exact float32 in [0, 1).
_MANTISSA_BITS = 24


def make_rng(seed: Optional[int] = None) -> np.random.RandomState:
    return np.random.RandomState(seed)


def create_factors(
    rng: np.random.RandomState,
    rows: int,
    cols: int,
    end_range: float
) -> np.ndarray:
    """Uniform draws over [0, end_range) as a (rows, cols) float32 matrix."""
    bits = rng.randint(0, 1 << _MANTISSA_BITS, size=(rows, cols))
    unit = bits.astype(np.float32) / np.float32(1 << _MANTISSA_BITS)
    return unit * np.float32(end_range)
