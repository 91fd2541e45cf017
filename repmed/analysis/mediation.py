"""End-to-end within-subjects mediation analysis."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ..config import BootstrapConfig
from ..data.schemas import ColumnRoles
from ..errors import DegenerateDistributionError, InvalidInputError
from ..statistical.derived import derive_arrays
from ..statistical.intervals import METHODS, ConfidenceInterval, IntervalBuilder
from ..statistical.paths import VARIANCE_ESTIMATORS, estimate_paths
from ..statistical.resampling import SINGULAR_POLICIES, bootstrap_distribution, jackknife_replicates
from ..utils.determinism import resolve_seed
from ..utils.logging_config import AnalysisMetricsLogger
from ..utils.validation import validate_levels, validate_observations, validate_replications, validate_seed

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Point estimate, interval rows and resampling metadata of one run."""
    estimate: float
    a: float
    b: float
    intervals: List[ConfidenceInterval]
    errors: Dict[str, str]
    n_subjects: int
    replications_requested: int
    replications_used: int
    discarded: int
    seed: int
    truncated: bool = False
    runtime_seconds: float = 0.0
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def interval(self, method: str, level: float) -> ConfidenceInterval:
        for ci in self.intervals:
            if ci.method == method and abs(ci.level - level) < 1e-12:
                return ci
        if method in self.errors:
            raise KeyError(f"No {method} interval: {self.errors[method]}")
        raise KeyError(f"No {method} interval at level {level}")

    def to_frame(self) -> pd.DataFrame:
        """Interval rows as a table with columns method, level, lower, upper, estimate."""
        return pd.DataFrame(
            [ci.to_dict() for ci in self.intervals],
            columns=["method", "level", "lower", "upper", "estimate"],
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["intervals"] = [ci.to_dict() for ci in self.intervals]
        return payload


class MediationAnalysis:
    """Bootstrap estimate and intervals of the within-subjects indirect effect."""

    def __init__(self, config: Optional[BootstrapConfig] = None):
        self.config = config or BootstrapConfig()
        self.metrics = AnalysisMetricsLogger()

    def _resolve_methods(self, methods: Optional[Iterable[str]]) -> List[str]:
        if methods is None:
            methods = self.config.methods
        requested = [methods] if isinstance(methods, str) else list(methods)
        out: List[str] = []
        for m in requested:
            name = str(m).strip().lower()
            if name not in METHODS:
                raise InvalidInputError(
                    f"Unknown interval method: {m!r} (expected one of {', '.join(METHODS)})"
                )
            if name not in out:
                out.append(name)
        if not out:
            raise InvalidInputError("At least one interval method is required")
        return out

    def _check_config(self) -> None:
        cfg = self.config
        errors = []
        if cfg.singular_policy not in SINGULAR_POLICIES:
            errors.append(f"singular_policy must be one of {SINGULAR_POLICIES}, got {cfg.singular_policy!r}")
        if not 0.0 <= cfg.max_discard_fraction <= 1.0:
            errors.append(f"max_discard_fraction must be in [0, 1], got {cfg.max_discard_fraction}")
        if cfg.block_size < 1:
            errors.append(f"block_size must be >= 1, got {cfg.block_size}")
        if cfg.variance_estimator is not None and cfg.variance_estimator not in VARIANCE_ESTIMATORS:
            errors.append(f"Unknown variance estimator: {cfg.variance_estimator!r}")
        if errors:
            raise InvalidInputError("; ".join(errors), errors=errors)

    def run(
        self,
        dataset: pd.DataFrame,
        m1: str,
        m2: str,
        y1: str,
        y2: str,
        replications: Optional[int] = None,
        confidence_levels: Optional[Iterable[float]] = None,
        methods: Optional[Iterable[str]] = None,
        seed: Optional[int] = None,
    ) -> AnalysisResult:
        """
        Estimate the indirect effect and its bootstrap confidence intervals.

        Args:
            dataset: One row per subject
            m1, m2: Mediator columns at the first and second condition
            y1, y2: Outcome columns at the first and second condition
            replications: Bootstrap resamples (default from config)
            confidence_levels: Levels in (0, 1) (default from config)
            methods: Subset of normal, basic, percentile, bca, studentized
            seed: Root random seed (default from config)

        Returns:
            AnalysisResult with one interval per (method, level) that succeeded
            and an error message for every method that failed

        Raises:
            InvalidInputError: Malformed dataset or options
            SingularDesignError: The full-sample design is singular
            InsufficientValidResamplesError: Too many resamples were discarded
        """
        start = time.perf_counter()
        cfg = self.config
        self._check_config()
        n_boot = validate_replications(cfg.replications if replications is None else replications)
        levels = validate_levels(cfg.confidence_levels if confidence_levels is None else confidence_levels)
        method_list = self._resolve_methods(methods)
        seed = cfg.seed if seed is None else seed
        root_seed = resolve_seed(None if seed is None else validate_seed(seed))

        roles = ColumnRoles(m1=m1, m2=m2, y1=y1, y2=y2)
        raw = validate_observations(dataset, roles)

        run_id = uuid.uuid4().hex[:12]
        self.metrics.log_run_start(run_id, raw.shape[0], n_boot, method_list, levels, root_seed)

        variance_estimator = None
        if "studentized" in method_list and cfg.variance_estimator is not None:
            variance_estimator = VARIANCE_ESTIMATORS[cfg.variance_estimator]

        point = estimate_paths(derive_arrays(raw), with_stderr=True)
        logger.debug("Full-sample paths: a=%.6g b=%.6g indirect=%.6g", point.a, point.b, point.indirect)
        distribution = bootstrap_distribution(
            raw,
            n_boot,
            root_seed,
            point=point,
            variance_estimator=variance_estimator,
            singular_policy=cfg.singular_policy,
            max_discard_fraction=cfg.max_discard_fraction,
            block_size=cfg.block_size,
            max_workers=cfg.max_workers,
            deadline_seconds=cfg.deadline_seconds,
            progress=cfg.progress,
        )
        self.metrics.log_discards(run_id, distribution.discarded, distribution.attempted)

        errors: Dict[str, str] = {}
        jackknife = None
        if "bca" in method_list:
            try:
                jackknife = jackknife_replicates(raw)
            except DegenerateDistributionError as e:
                errors["bca"] = f"{type(e).__name__}: {e}"
                self.metrics.log_method_failure(run_id, "bca", errors["bca"])

        builder = IntervalBuilder(distribution, jackknife=jackknife)
        intervals, method_errors = builder.build(
            [m for m in method_list if m not in errors], levels
        )
        for method, message in method_errors.items():
            self.metrics.log_method_failure(run_id, method, message)
        errors.update(method_errors)

        runtime = time.perf_counter() - start
        self.metrics.log_run_complete(
            run_id,
            point.indirect,
            distribution.replications,
            distribution.discarded,
            runtime * 1000,
            truncated=distribution.truncated,
        )

        return AnalysisResult(
            estimate=point.indirect,
            a=point.a,
            b=point.b,
            intervals=intervals,
            errors=errors,
            n_subjects=int(raw.shape[0]),
            replications_requested=n_boot,
            replications_used=distribution.replications,
            discarded=distribution.discarded,
            seed=root_seed,
            truncated=distribution.truncated,
            runtime_seconds=runtime,
            run_id=run_id,
        )


def run_mediation(
    dataset: pd.DataFrame,
    m1: str,
    m2: str,
    y1: str,
    y2: str,
    config: Optional[BootstrapConfig] = None,
    **overrides: Any,
) -> AnalysisResult:
    """Run a mediation analysis; keyword overrides replace config fields.

    ``replications``, ``confidence_levels``, ``methods`` and ``seed`` are
    passed to ``MediationAnalysis.run``; any other keyword must name a
    ``BootstrapConfig`` field.
    """
    run_args = {
        key: overrides.pop(key)
        for key in ("replications", "confidence_levels", "methods", "seed")
        if key in overrides
    }
    cfg = config or BootstrapConfig()
    if overrides:
        try:
            cfg = replace(cfg, **overrides)
        except TypeError as e:
            raise InvalidInputError(f"Unknown configuration option: {e}")
    return MediationAnalysis(cfg).run(dataset, m1, m2, y1, y2, **run_args)
