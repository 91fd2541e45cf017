"""Error taxonomy for repmed."""

from __future__ import annotations

from typing import List, Optional


class MediationError(Exception):
    """Base exception for mediation analysis errors."""
    pass


class InvalidInputError(MediationError, ValueError):
    """Raised for malformed datasets, columns or options."""
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class SingularDesignError(MediationError):
    """Raised when a regression design matrix is rank deficient."""
    def __init__(self, message: str, rank: Optional[int] = None):
        super().__init__(message)
        self.rank = rank


class InsufficientValidResamplesError(MediationError):
    """Raised when too many resamples had to be discarded."""
    def __init__(self, message: str, discarded: int, requested: int):
        super().__init__(message)
        self.discarded = discarded
        self.requested = requested


class UnsupportedMethodError(MediationError):
    """Raised when an interval method cannot be computed with the inputs given."""
    pass


class DegenerateDistributionError(MediationError):
    """Raised when the bootstrap or jackknife distribution cannot support an interval."""
    pass
