from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .errors import RoleInvalidError


class Role(str, Enum):
    """Closed set of roles a user may hold."""

    admin = "admin"
    user = "user"


def parse_role(value: str | Role) -> Role:
    """Coerce a raw role value into :class:`Role` or raise ``RoleInvalidError``."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError as exc:
        raise RoleInvalidError(f"invalid role: {value!r}") from exc


@dataclass(slots=True)
class User:
    """Aggregate root for an active user account."""

    user_id: str
    full_name: str
    username: str
    birthdate: date
    email: str
    password_hash: str = field(repr=False)
    role: Role
    created_at: datetime
    updated_at: datetime
    email_verified: bool = False


@dataclass(slots=True, frozen=True)
class EmailVerification:
    """Pending email verification issued to a user."""

    code: str
    user_id: str
    created_at: datetime
    expires_at: datetime


@dataclass(slots=True, frozen=True)
class AuthorizationResult:
    """Identity resolved from a verified bearer token."""

    user_id: str
    username: str
    role: Role
