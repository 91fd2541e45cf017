"""Data handling modules for repmed."""

from .schemas import DEFAULT_ROLES, ColumnRoles, Observation
from .loader import iter_observations, load_dataset, observations_to_frame

__all__ = [
    "ColumnRoles",
    "DEFAULT_ROLES",
    "Observation",
    "load_dataset",
    "observations_to_frame",
    "iter_observations",
]
