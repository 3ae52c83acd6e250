from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure `import mfrec` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from mfrec import Dataset  # noqa: E402


@pytest.fixture
def ratings_dataset() -> Dataset:
    """Low-rank synthetic ratings on a 1-5 scale, about half the matrix observed."""
    rng = np.random.RandomState(7)
    users = rng.uniform(0.5, 1.5, size=(30, 3))
    items = rng.uniform(0.5, 1.5, size=(20, 3))
    full = np.clip(users @ items.T, 1.0, 5.0)

    data = Dataset()
    for u in range(30):
        for i in range(20):
            if rng.rand() < 0.5:
                data.add(f"user{u}", f"item{i}", float(np.round(full[u, i])))
    return data


@pytest.fixture
def interactions_dataset() -> Dataset:
    rng = np.random.RandomState(11)
    data = Dataset()
    for u in range(25):
        for i in rng.choice(15, size=4, replace=False):
            data.add(u, int(i), float(rng.randint(1, 4)))
    return data
