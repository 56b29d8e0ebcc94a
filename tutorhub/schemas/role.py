from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ADMIN = "admin"
    TUTOR = "tutor"
    STUDENT = "student"


class Unresolved(BaseModel):
    """Role not known yet, or the lookup failed. Never read as ``student``."""

    model_config = ConfigDict(frozen=True)

    error: Optional[str] = None


class Known(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role


RoleState = Union[Unresolved, Known]


def parse_role(value: Optional[str]) -> RoleState:
    try:
        return Known(role=Role((value or "").strip().lower()))
    except ValueError:
        return Unresolved(error=f"Unknown role: {value!r}")
