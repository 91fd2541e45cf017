"""repmed: bootstrap mediation analysis for two-condition within-subjects designs.

The indirect effect of the condition on the outcome through the mediator is
estimated as ``a * b`` from two regressions on difference scores, with
confidence intervals from case resampling (normal, basic, percentile, BCa,
studentized).
"""

from .analysis import AnalysisResult, MediationAnalysis, run_mediation
from .config import AppConfig, BootstrapConfig, default_app_config
from .data import ColumnRoles, Observation, load_dataset
from .errors import (
    DegenerateDistributionError,
    InsufficientValidResamplesError,
    InvalidInputError,
    MediationError,
    SingularDesignError,
    UnsupportedMethodError,
)
from .statistical import ConfidenceInterval, PathCoefficients

__all__ = [
    "__version__",
    "AppConfig",
    "BootstrapConfig",
    "default_app_config",
    "ColumnRoles",
    "Observation",
    "load_dataset",
    "MediationAnalysis",
    "AnalysisResult",
    "run_mediation",
    "ConfidenceInterval",
    "PathCoefficients",
    "MediationError",
    "InvalidInputError",
    "SingularDesignError",
    "InsufficientValidResamplesError",
    "UnsupportedMethodError",
    "DegenerateDistributionError",
]

__version__ = "0.1.0"
