"""Analysis modules for repmed."""

from .mediation import AnalysisResult, MediationAnalysis, run_mediation

__all__ = [
    "AnalysisResult",
    "MediationAnalysis",
    "run_mediation",
]
