"""Two-equation path estimation for the within-subjects indirect effect.

Model 1 regresses the mediator difference on a constant only, so its single
coefficient ``a`` is the mean of ``mdiff``. Model 2 regresses the outcome
difference on ``mdiff`` and the centred mediator sum (with intercept); ``b``
is the coefficient on ``mdiff``. The indirect effect is ``a * b``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np

from ..errors import SingularDesignError
from .derived import DerivedVariables, derive_arrays

_OUTCOME_TERMS = 3  # const, mdiff, msum_centered


@dataclass(frozen=True)
class PathCoefficients:
    """Path coefficients fitted on one dataset."""
    a: float
    b: float
    se_a: float = math.nan
    se_b: float = math.nan

    @property
    def indirect(self) -> float:
        return self.a * self.b


def fit_mediator_model(derived: DerivedVariables) -> Tuple[float, float]:
    """Intercept-only OLS of ``mdiff``; returns ``(a, se_a)``."""
    n = len(derived)
    if n == 0:
        raise SingularDesignError("Mediator model needs at least one observation", rank=0)
    a = float(derived.mdiff.mean())
    se_a = float(derived.mdiff.std(ddof=1) / math.sqrt(n)) if n > 1 else math.nan
    return a, se_a


def fit_outcome_model(derived: DerivedVariables, with_stderr: bool = True) -> Tuple[float, float]:
    """OLS of ``ydiff ~ 1 + mdiff + msum_centered``; returns ``(b, se_b)``.

    Raises:
        SingularDesignError: If the design matrix has rank below 3
    """
    X = derived.design_matrix()
    y = derived.ydiff
    n = X.shape[0]
    if n < _OUTCOME_TERMS:
        raise SingularDesignError(
            f"Outcome model needs at least {_OUTCOME_TERMS} observations, got {n}", rank=n
        )

    beta, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < _OUTCOME_TERMS:
        raise SingularDesignError(
            f"Outcome model design is rank deficient (rank {rank} < {_OUTCOME_TERMS})", rank=int(rank)
        )

    b = float(beta[1])
    if not with_stderr or n <= _OUTCOME_TERMS:
        return b, math.nan

    resid = y - X @ beta
    sigma2 = float(resid @ resid) / (n - _OUTCOME_TERMS)
    xtx_inv = np.linalg.inv(X.T @ X)
    return b, math.sqrt(sigma2 * xtx_inv[1, 1])


def estimate_paths(derived: DerivedVariables, with_stderr: bool = True) -> PathCoefficients:
    """Fit both models on ``derived`` and return the path coefficients."""
    a, se_a = fit_mediator_model(derived)
    b, se_b = fit_outcome_model(derived, with_stderr=with_stderr)
    if not with_stderr:
        se_a = math.nan
    return PathCoefficients(a=a, b=b, se_a=se_a, se_b=se_b)


def estimate_indirect(raw: np.ndarray) -> float:
    """Indirect effect ``a * b`` for a raw ``(n, 4)`` M1, M2, Y1, Y2 matrix."""
    return estimate_paths(derive_arrays(raw), with_stderr=False).indirect


def sobel_variance(paths: PathCoefficients) -> float:
    """First-order delta-method variance of ``a * b``."""
    return paths.a ** 2 * paths.se_b ** 2 + paths.b ** 2 * paths.se_a ** 2


VarianceEstimator = Callable[[PathCoefficients], float]

VARIANCE_ESTIMATORS: Dict[str, VarianceEstimator] = {
    "sobel": sobel_variance,
}
