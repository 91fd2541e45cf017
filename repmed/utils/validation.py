"""Schema validation utilities for paired datasets and run options."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from ..data.schemas import ROLE_NAMES, ColumnRoles
from ..errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class FieldSpec:
    """Specification for one measurement column."""
    name: str
    role: str
    required: bool = True
    nullable: bool = False
    finite: bool = True


@dataclass
class DatasetSchema:
    """Schema definition for dataset validation."""
    name: str
    fields: List[FieldSpec]
    min_records: Optional[int] = 1


def paired_schema(roles: ColumnRoles) -> DatasetSchema:
    """Schema for a two-condition repeated-measures mediation table."""
    return DatasetSchema(
        name="paired_mediation",
        fields=[FieldSpec(name=col, role=role) for role, col in roles.as_dict().items()],
        min_records=1,
    )


class SchemaValidator:
    """Validator for paired-measurement tables."""

    def __init__(self, schema: DatasetSchema):
        self.schema = schema

    def validate_column(self, frame: pd.DataFrame, field_spec: FieldSpec) -> List[str]:
        """Validate one column against its field spec.

        Args:
            frame: Table holding the column
            field_spec: Expected column properties

        Returns:
            List of validation errors (empty if valid)
        """
        label = f"{field_spec.name} ({field_spec.role})"
        if field_spec.name not in frame.columns:
            return [f"Missing required column: {label}"] if field_spec.required else []

        column = frame[field_spec.name]
        if is_bool_dtype(column) or not is_numeric_dtype(column):
            return [f"Column {label} is not numeric: dtype {column.dtype}"]

        errors = []
        n_missing = int(column.isna().sum())
        if n_missing and not field_spec.nullable:
            rows = column.index[column.isna()].tolist()[:5]
            errors.append(f"Column {label} has {n_missing} missing values (rows {rows})")
        if field_spec.finite:
            values = column.to_numpy(dtype=float)
            n_inf = int(np.isinf(values).sum())
            if n_inf:
                errors.append(f"Column {label} has {n_inf} infinite values")
        return errors

    def validate_frame(self, frame: Any) -> None:
        """Validate an entire table.

        Raises:
            InvalidInputError: If validation fails
        """
        if not isinstance(frame, pd.DataFrame):
            raise InvalidInputError(
                f"Expected a pandas DataFrame, got {type(frame).__name__}"
            )

        all_errors = []
        if self.schema.min_records and len(frame) < self.schema.min_records:
            all_errors.append(
                f"Dataset has too few records: minimum {self.schema.min_records}, got {len(frame)}"
            )

        for field_spec in self.schema.fields:
            all_errors.extend(self.validate_column(frame, field_spec))

        if all_errors:
            logger.error("Dataset %s failed validation with %d errors", self.schema.name, len(all_errors))
            raise InvalidInputError(
                f"Dataset validation failed: {'; '.join(all_errors)}",
                errors=all_errors,
            )

    def to_matrix(self, frame: pd.DataFrame) -> np.ndarray:
        """Validate and return the measurement columns as an ``(n, k)`` float matrix."""
        self.validate_frame(frame)
        columns = [f.name for f in self.schema.fields]
        return frame[columns].to_numpy(dtype=float, copy=True)


def validate_observations(frame: pd.DataFrame, roles: ColumnRoles) -> np.ndarray:
    """Validate ``frame`` and return an ``(n, 4)`` matrix ordered M1, M2, Y1, Y2."""
    return SchemaValidator(paired_schema(roles)).to_matrix(frame)


def validate_matrix(raw: Any) -> np.ndarray:
    """Check a raw ``(n, 4)`` measurement matrix."""
    try:
        arr = np.asarray(raw, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Measurements are not numeric: {e}")
    if arr.ndim != 2 or arr.shape[1] != len(ROLE_NAMES):
        raise InvalidInputError(
            f"Expected an (n, {len(ROLE_NAMES)}) matrix, got shape {arr.shape}"
        )
    if arr.shape[0] == 0:
        raise InvalidInputError("Dataset is empty")
    if not np.all(np.isfinite(arr)):
        raise InvalidInputError("Measurements contain missing or non-finite values")
    return arr


def validate_replications(replications: Any) -> int:
    if isinstance(replications, bool) or not isinstance(replications, (int, np.integer)):
        raise InvalidInputError(f"replications must be an integer, got {replications!r}")
    if replications < 1:
        raise InvalidInputError(f"replications must be >= 1, got {replications}")
    return int(replications)


def validate_seed(seed: Any) -> int:
    """Check a root seed is a non-negative integer."""
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise InvalidInputError(f"seed must be an integer, got {seed!r}")
    if seed < 0:
        raise InvalidInputError(f"seed must be a non-negative integer, got {seed}")
    return int(seed)


def validate_levels(levels: Iterable[Any]) -> List[float]:
    """Check confidence levels lie strictly inside (0, 1)."""
    if isinstance(levels, (int, float)):
        levels = [levels]
    out = []
    errors = []
    for level in levels:
        try:
            value = float(level)
        except (TypeError, ValueError):
            errors.append(f"Confidence level is not a number: {level!r}")
            continue
        if not 0.0 < value < 1.0:
            errors.append(f"Confidence level must be in (0, 1): {level!r}")
            continue
        if value not in out:
            out.append(value)
    if not out and not errors:
        errors.append("At least one confidence level is required")
    if errors:
        raise InvalidInputError("; ".join(errors), errors=errors)
    return out
