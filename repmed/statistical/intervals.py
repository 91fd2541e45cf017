"""Bootstrap confidence intervals for the indirect effect.

All methods share one sorted copy of the bootstrap distribution. Quantiles use
linear interpolation between order statistics (Hyndman & Fan type 7, the
NumPy default): for probability ``q`` over ``R`` sorted values,
``h = (R - 1) * q`` and the quantile is
``x[floor(h)] + (h - floor(h)) * (x[floor(h) + 1] - x[floor(h)])``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
from scipy.stats import norm  # type: ignore

from ..errors import DegenerateDistributionError, UnsupportedMethodError
from .resampling import BootstrapDistribution

logger = logging.getLogger(__name__)

METHODS = ("normal", "basic", "percentile", "bca", "studentized")


@dataclass(frozen=True)
class ConfidenceInterval:
    """One interval row: method, level, bounds and the full-sample estimate."""
    method: str
    level: float
    lower: float
    upper: float
    estimate: float

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def contains(self, other: "ConfidenceInterval") -> bool:
        return self.lower <= other.lower and other.upper <= self.upper

    def to_dict(self) -> dict:
        return asdict(self)


def quantile_sorted(sorted_values: np.ndarray, q: float) -> float:
    """Linear-interpolation quantile of an already sorted array."""
    n = sorted_values.shape[0]
    if n == 0:
        raise DegenerateDistributionError("Cannot take a quantile of an empty distribution")
    h = (n - 1) * min(max(q, 0.0), 1.0)
    lo = int(math.floor(h))
    hi = min(lo + 1, n - 1)
    return float(sorted_values[lo] + (h - lo) * (sorted_values[hi] - sorted_values[lo]))


def bias_correction(values: np.ndarray, estimate: float) -> float:
    """``z0 = Phi^-1(share of bootstrap values below the estimate)``."""
    share = float(np.mean(values < estimate))
    if share <= 0.0 or share >= 1.0:
        raise DegenerateDistributionError(
            f"Bias correction undefined: {share:.0%} of bootstrap values lie below the estimate"
        )
    return float(norm.ppf(share))


def acceleration(jackknife: np.ndarray) -> float:
    """Skewness-based acceleration constant from jackknife replicates."""
    diffs = np.mean(jackknife) - jackknife
    ss = float(np.sum(diffs ** 2))
    if not np.isfinite(ss) or ss <= 0.0:
        raise DegenerateDistributionError("Jackknife replicates have zero variance")
    return float(np.sum(diffs ** 3)) / (6.0 * ss ** 1.5)


def bca_levels(z0: float, accel: float, level: float) -> Tuple[float, float]:
    """Adjusted lower/upper probabilities of the BCa interval."""
    alpha = 1.0 - level
    out = []
    for q in (alpha / 2, 1.0 - alpha / 2):
        zq = z0 + norm.ppf(q)
        denom = 1.0 - accel * zq
        if denom <= 0.0:
            raise DegenerateDistributionError(
                f"BCa adjustment undefined at level {level}: acceleration {accel:.4g} too large"
            )
        out.append(float(norm.cdf(z0 + zq / denom)))
    return out[0], out[1]


class IntervalBuilder:
    """Builds confidence intervals of every requested method from one distribution."""

    def __init__(
        self,
        distribution: BootstrapDistribution,
        jackknife: Optional[np.ndarray] = None,
    ):
        """
        Args:
            distribution: Bootstrap distribution with the full-sample estimate
            jackknife: Leave-one-out replicates on the original sample (BCa only)
        """
        self.distribution = distribution
        self.estimate = float(distribution.estimate)
        self.jackknife = jackknife
        self._sorted = np.sort(distribution.values)
        self._stderr: Optional[float] = None
        self._t_sorted: Optional[np.ndarray] = None
        self._bca: Optional[Tuple[float, float]] = None

        self._methods: Dict[str, Callable[[float], Tuple[float, float]]] = {
            "normal": self._normal,
            "basic": self._basic,
            "percentile": self._percentile,
            "bca": self._bca_bounds,
            "studentized": self._studentized,
        }

    # --- shared structures --------------------------------------------------

    @property
    def stderr(self) -> float:
        """Sample standard deviation of the bootstrap distribution."""
        if self._stderr is None:
            if self._sorted.shape[0] < 2:
                raise DegenerateDistributionError("Standard error needs at least two resamples")
            self._stderr = float(np.std(self._sorted, ddof=1))
        return self._stderr

    def bca_constants(self) -> Tuple[float, float]:
        """``(z0, acceleration)``, computed once per builder."""
        if self._bca is None:
            if self.jackknife is None:
                raise DegenerateDistributionError("BCa intervals need jackknife replicates")
            self._bca = (
                bias_correction(self._sorted, self.estimate),
                acceleration(np.asarray(self.jackknife, dtype=float)),
            )
        return self._bca

    def _studentized_sorted(self) -> np.ndarray:
        if self._t_sorted is None:
            dist = self.distribution
            if dist.stderrs is None or dist.estimate_stderr is None:
                raise UnsupportedMethodError(
                    "Studentized intervals need a per-resample variance estimator"
                )
            if not np.isfinite(dist.estimate_stderr) or dist.estimate_stderr <= 0:
                raise DegenerateDistributionError("Full-sample standard error is zero or undefined")
            with np.errstate(divide="ignore", invalid="ignore"):
                t = (dist.values - self.estimate) / dist.stderrs
            if not np.all(np.isfinite(t)):
                raise DegenerateDistributionError(
                    f"{int(np.sum(~np.isfinite(t)))} resamples have a zero or undefined standard error"
                )
            self._t_sorted = np.sort(t)
        return self._t_sorted

    # --- methods ------------------------------------------------------------

    def _percentile(self, level: float) -> Tuple[float, float]:
        alpha = 1.0 - level
        return (
            quantile_sorted(self._sorted, alpha / 2),
            quantile_sorted(self._sorted, 1.0 - alpha / 2),
        )

    def _basic(self, level: float) -> Tuple[float, float]:
        lo, hi = self._percentile(level)
        return 2.0 * self.estimate - hi, 2.0 * self.estimate - lo

    def _normal(self, level: float) -> Tuple[float, float]:
        z = float(norm.ppf(1.0 - (1.0 - level) / 2))
        margin = z * self.stderr
        return self.estimate - margin, self.estimate + margin

    def _studentized(self, level: float) -> Tuple[float, float]:
        t_sorted = self._studentized_sorted()
        alpha = 1.0 - level
        se0 = float(self.distribution.estimate_stderr)
        return (
            self.estimate - se0 * quantile_sorted(t_sorted, 1.0 - alpha / 2),
            self.estimate - se0 * quantile_sorted(t_sorted, alpha / 2),
        )

    def _bca_bounds(self, level: float) -> Tuple[float, float]:
        z0, accel = self.bca_constants()
        q_lo, q_hi = bca_levels(z0, accel, level)
        return quantile_sorted(self._sorted, q_lo), quantile_sorted(self._sorted, q_hi)

    # --- public -------------------------------------------------------------

    def interval(self, method: str, level: float) -> ConfidenceInterval:
        """Build a single interval.

        Raises:
            UnsupportedMethodError: Unknown method, or studentized without a
                variance estimator
            DegenerateDistributionError: The distribution cannot support the method
        """
        if method not in self._methods:
            raise UnsupportedMethodError(f"Unknown interval method: {method}")
        lower, upper = self._methods[method](level)
        return ConfidenceInterval(
            method=method, level=level, lower=lower, upper=upper, estimate=self.estimate
        )

    def build(
        self, methods: Iterable[str], levels: Iterable[float]
    ) -> Tuple[List[ConfidenceInterval], Dict[str, str]]:
        """Build one interval per (method, level).

        A method that fails is reported in the returned error map and does not
        stop the remaining methods.
        """
        levels = list(levels)
        intervals: List[ConfidenceInterval] = []
        errors: Dict[str, str] = {}
        for method in methods:
            try:
                rows = [self.interval(method, level) for level in levels]
            except (UnsupportedMethodError, DegenerateDistributionError) as e:
                logger.debug("Interval method %s failed: %s", method, e)
                errors[method] = f"{type(e).__name__}: {e}"
                continue
            intervals.extend(rows)
        return intervals, errors


def build_intervals(
    distribution: BootstrapDistribution,
    methods: Iterable[str],
    levels: Iterable[float],
    jackknife: Optional[np.ndarray] = None,
) -> Tuple[List[ConfidenceInterval], Dict[str, str]]:
    """Convenience wrapper around ``IntervalBuilder.build``."""
    return IntervalBuilder(distribution, jackknife=jackknife).build(methods, levels)
