from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DATA_DIR = Path(__file__).resolve().parent / "data"


# ====================
# Dataset Fixtures
# ====================

@pytest.fixture(autouse=True)
def _clear_repmed_env(monkeypatch):
    """Keep REPMED_* overrides from the calling shell out of config defaults."""
    for name in ("REPMED_REPLICATIONS", "REPMED_SEED", "REPMED_MAX_WORKERS", "REPMED_METHODS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def worked_csv() -> Path:
    """Ten-subject worked example with two irregular subjects (6 and 9)."""
    return DATA_DIR / "worked_example.csv"


@pytest.fixture
def worked_frame(worked_csv) -> pd.DataFrame:
    return pd.read_csv(worked_csv)


@pytest.fixture
def worked_raw(worked_frame) -> np.ndarray:
    return worked_frame[["M1", "M2", "Y1", "Y2"]].to_numpy(dtype=float)


def make_synthetic_frame(n: int = 60, seed: int = 7) -> pd.DataFrame:
    """Paired measurements with a positive indirect effect."""
    rng = np.random.default_rng(seed)
    m1 = rng.normal(3.0, 1.0, n)
    m2 = m1 + 0.5 + rng.normal(0.0, 0.5, n)
    y1 = 1.0 + 0.3 * m1 + rng.normal(0.0, 1.0, n)
    y2 = y1 + 0.4 * (m2 - m1) + rng.normal(0.0, 0.5, n)
    return pd.DataFrame({"M1": m1, "M2": m2, "Y1": y1, "Y2": y2})


@pytest.fixture
def synthetic_frame() -> pd.DataFrame:
    return make_synthetic_frame()


@pytest.fixture
def synthetic_raw(synthetic_frame) -> np.ndarray:
    return synthetic_frame[["M1", "M2", "Y1", "Y2"]].to_numpy(dtype=float)


@pytest.fixture
def three_subject_raw() -> np.ndarray:
    """Smallest full-rank sample; most of its resamples are singular."""
    return np.array(
        [
            [1.0, 2.0, 1.0, 2.0],
            [2.0, 4.0, 1.0, 3.0],
            [3.0, 3.5, 2.0, 5.0],
        ]
    )


# ====================
# Helper Functions for Tests
# ====================

def closed_form_paths(raw: np.ndarray) -> tuple[float, float]:
    """``(a, b)`` from the normal equations, independent of the estimator code."""
    m1, m2, y1, y2 = raw.T
    mdiff = m2 - m1
    ydiff = y2 - y1
    msum = (m1 + m2) / 2.0
    X = np.column_stack([np.ones_like(mdiff), mdiff, msum - msum.mean()])
    beta = np.linalg.solve(X.T @ X, X.T @ ydiff)
    return float(mdiff.mean()), float(beta[1])
