"""Data schemas for repmed."""

from typing import Dict, List, Mapping, NamedTuple

from ..errors import InvalidInputError

ROLE_NAMES = ("m1", "m2", "y1", "y2")


class Observation(NamedTuple):
    """One subject's paired mediator and outcome measurements."""
    m1: float
    m2: float
    y1: float
    y2: float


class ColumnRoles(NamedTuple):
    """Column names holding each measurement role."""
    m1: str
    m2: str
    y1: str
    y2: str

    def as_list(self) -> List[str]:
        return [self.m1, self.m2, self.y1, self.y2]

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(ROLE_NAMES, self.as_list()))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "ColumnRoles":
        missing = [role for role in ROLE_NAMES if not mapping.get(role)]
        if missing:
            raise InvalidInputError(
                f"Column mapping missing roles: {', '.join(missing)}",
                errors=[f"Missing role: {role}" for role in missing],
            )
        return cls(**{role: str(mapping[role]) for role in ROLE_NAMES})


DEFAULT_ROLES = ColumnRoles(m1="M1", m2="M2", y1="Y1", y2="Y2")
