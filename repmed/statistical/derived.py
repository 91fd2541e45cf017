"""Derived variables for two-condition within-subjects mediation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..data.schemas import ROLE_NAMES, ColumnRoles
from ..errors import InvalidInputError
from ..utils.validation import validate_observations

DERIVED_COLUMNS = ("mdiff", "ydiff", "msum_centered", "const")


@dataclass(frozen=True)
class DerivedVariables:
    """Regression inputs computed from one (possibly resampled) dataset."""
    mdiff: np.ndarray
    ydiff: np.ndarray
    msum_centered: np.ndarray
    const: np.ndarray

    def __len__(self) -> int:
        return int(self.mdiff.shape[0])

    def design_matrix(self) -> np.ndarray:
        """``[const, mdiff, msum_centered]`` design for the outcome model."""
        return np.column_stack([self.const, self.mdiff, self.msum_centered])


def derive_arrays(raw: np.ndarray) -> DerivedVariables:
    """Derive regression inputs from an ``(n, 4)`` matrix ordered M1, M2, Y1, Y2.

    The mediator sum is centred on the mean of the rows passed in, so a
    resampled matrix is centred on its own mean. Only the shape is checked
    here; values are validated once by the callers (see ``validate_matrix``).

    Raises:
        InvalidInputError: If ``raw`` is not a non-empty ``(n, 4)`` matrix
    """
    raw = np.asarray(raw)
    if raw.ndim != 2 or raw.shape[1] != len(ROLE_NAMES) or raw.shape[0] == 0:
        raise InvalidInputError(
            f"Expected a non-empty (n, {len(ROLE_NAMES)}) matrix, got shape {raw.shape}"
        )
    m1, m2, y1, y2 = raw[:, 0], raw[:, 1], raw[:, 2], raw[:, 3]
    msum = 0.5 * (m1 + m2)
    return DerivedVariables(
        mdiff=m2 - m1,
        ydiff=y2 - y1,
        msum_centered=msum - msum.mean(),
        const=np.ones_like(m1),
    )


def derive_variables(frame: pd.DataFrame, roles: ColumnRoles) -> pd.DataFrame:
    """Return ``frame`` augmented with the derived regression columns.

    Raises:
        InvalidInputError: If a role column is missing, non-numeric or incomplete
    """
    derived = derive_arrays(validate_observations(frame, roles))
    out = frame.copy()
    for name in DERIVED_COLUMNS:
        out[name] = getattr(derived, name)
    return out
