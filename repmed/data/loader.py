"""Data loading utilities for repmed."""

from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

import pandas as pd

from ..errors import InvalidInputError
from ..utils.validation import validate_observations
from .schemas import DEFAULT_ROLES, ColumnRoles, Observation

_SEPARATORS = {".csv": ",", ".tsv": "\t", ".txt": None}


def load_dataset(
    path: Union[str, Path],
    columns: Optional[ColumnRoles] = None,
    max_items: Optional[int] = None,
) -> pd.DataFrame:
    """Load a one-row-per-subject table from a CSV/TSV file.

    Args:
        path: Path to a .csv, .tsv or whitespace-delimited .txt file
        columns: Optional column roles; when given, the table is validated
        max_items: Optional limit on number of rows to load

    Returns:
        DataFrame with one row per subject, original column names kept

    Raises:
        FileNotFoundError: If file doesn't exist
        InvalidInputError: If the file is unreadable or the data is malformed
    """
    filepath = Path(path).resolve()
    if not filepath.exists():
        raise FileNotFoundError(f"Dataset file not found: {filepath}")
    if not filepath.is_file():
        raise InvalidInputError(f"Path is not a file: {filepath}")
    suffix = filepath.suffix.lower()
    if suffix not in _SEPARATORS:
        raise InvalidInputError(f"Expected .csv, .tsv or .txt file, got: {filepath.suffix}")

    sep = _SEPARATORS[suffix]
    try:
        if sep is None:
            frame = pd.read_csv(filepath, sep=r"\s+", nrows=max_items)
        else:
            frame = pd.read_csv(filepath, sep=sep, nrows=max_items)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InvalidInputError(f"Error loading dataset from {filepath}: {e}")

    if frame.empty:
        raise InvalidInputError(f"Dataset is empty or no valid rows found in {filepath}")

    if columns is not None:
        validate_observations(frame, columns)

    return frame


def observations_to_frame(
    observations: Sequence[Observation], columns: ColumnRoles = DEFAULT_ROLES
) -> pd.DataFrame:
    """Build a dataset table from ``Observation`` records."""
    rows = [tuple(obs) for obs in observations]
    return pd.DataFrame(rows, columns=columns.as_list(), dtype=float)


def iter_observations(frame: pd.DataFrame, columns: ColumnRoles) -> Iterator[Observation]:
    """Yield validated ``Observation`` records in row order."""
    for m1, m2, y1, y2 in validate_observations(frame, columns):
        yield Observation(float(m1), float(m2), float(y1), float(y2))
