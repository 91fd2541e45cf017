"""Statistical engine: derived variables, path estimation, resampling, intervals."""

from .derived import DERIVED_COLUMNS, DerivedVariables, derive_arrays, derive_variables
from .intervals import (
    METHODS,
    ConfidenceInterval,
    IntervalBuilder,
    acceleration,
    bca_levels,
    bias_correction,
    build_intervals,
    quantile_sorted,
)
from .paths import (
    VARIANCE_ESTIMATORS,
    PathCoefficients,
    estimate_indirect,
    estimate_paths,
    fit_mediator_model,
    fit_outcome_model,
    sobel_variance,
)
from .resampling import BootstrapDistribution, bootstrap_distribution, jackknife_replicates

__all__ = [
    # Derived variables
    "DERIVED_COLUMNS",
    "DerivedVariables",
    "derive_arrays",
    "derive_variables",
    # Path estimation
    "PathCoefficients",
    "VARIANCE_ESTIMATORS",
    "estimate_paths",
    "estimate_indirect",
    "fit_mediator_model",
    "fit_outcome_model",
    "sobel_variance",
    # Resampling
    "BootstrapDistribution",
    "bootstrap_distribution",
    "jackknife_replicates",
    # Intervals
    "METHODS",
    "ConfidenceInterval",
    "IntervalBuilder",
    "build_intervals",
    "quantile_sorted",
    "bias_correction",
    "acceleration",
    "bca_levels",
]
