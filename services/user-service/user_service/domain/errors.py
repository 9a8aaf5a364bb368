"""Domain error hierarchy raised across the user service boundary.

Every failure a caller can observe is one of the classes below. Each instance
is created at the point of failure and carries a stable ``code`` that adapters
(HTTP, gRPC, CLI) can map onto their own status vocabulary.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Literal


class ValidationReason(str, Enum):
    """Why a field failed validation."""

    required = "required"
    too_short = "too_short"
    too_long = "too_long"
    invalid_format = "invalid_format"
    mismatch = "mismatch"


class UserServiceError(Exception):
    """Base class for typed failures surfaced by the user service."""

    code: ClassVar[str] = "user_service_error"
    default_message: ClassVar[str] = "user service error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationFailedError(UserServiceError, ValueError):
    """An input field has the wrong shape."""

    code = "validation_failed"

    def __init__(self, field: str, reason: ValidationReason, message: str | None = None) -> None:
        self.field = field
        self.reason = reason
        super().__init__(message or f"{field}: {reason.value}")


class AlreadyExistsError(UserServiceError):
    code = "already_exists"
    default_message = "user already exists"


class NotFoundError(UserServiceError):
    code = "not_found"
    default_message = "user not found"


class InvalidCredentialsError(UserServiceError):
    code = "invalid_credentials"
    default_message = "invalid email or password"


class UnknownEmailError(NotFoundError, InvalidCredentialsError):
    """No active user owns the email presented at login.

    Catching :class:`InvalidCredentialsError` covers this case as well, so
    callers can report both login failures identically.
    """

    code = "not_found"
    default_message = "invalid email or password"


class TokenExpiredError(UserServiceError):
    code = "token_expired"
    default_message = "token expired"


class TokenInvalidError(UserServiceError):
    code = "token_invalid"
    default_message = "token is invalid"


class RoleInvalidError(UserServiceError):
    code = "role_invalid"
    default_message = "role is invalid"


class ForbiddenError(UserServiceError):
    code = "forbidden"
    default_message = "privileged accounts cannot be self-registered"


class DependencyFailureError(UserServiceError):
    """A collaborator (store or notifier) failed while serving a request."""

    code = "dependency_failure"

    def __init__(
        self,
        dependency: Literal["store", "notifier"],
        cause: BaseException,
        context: str | None = None,
    ) -> None:
        self.dependency = dependency
        self.cause = cause
        prefix = f"{context}: " if context else ""
        super().__init__(f"{prefix}{dependency} failure: {cause}")


__all__ = [
    "AlreadyExistsError",
    "DependencyFailureError",
    "ForbiddenError",
    "InvalidCredentialsError",
    "NotFoundError",
    "RoleInvalidError",
    "TokenExpiredError",
    "TokenInvalidError",
    "UnknownEmailError",
    "UserServiceError",
    "ValidationFailedError",
    "ValidationReason",
]
