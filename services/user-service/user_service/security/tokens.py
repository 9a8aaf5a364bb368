"""Utilities for issuing and validating user access JWTs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import Settings
from ..domain.errors import TokenExpiredError, TokenInvalidError
from ..domain.user import Role, parse_role
from ..domain.validate import validate_identifier

ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=30)


@dataclass(slots=True, frozen=True)
class TokenClaims:
    """Typed view of a verified token payload."""

    subject: str
    role: Role
    expires_at: datetime


class _ClaimsPayload(BaseModel):
    """Shape check for the subject and role claims of a decoded token."""

    model_config = ConfigDict(extra="ignore")

    sub: str = Field(strict=True)
    role: Role

    @field_validator("sub")
    @classmethod
    def _canonical_subject(cls, value: str) -> str:
        validate_identifier(value, field="sub")
        return value


def _as_utc(moment: datetime | None) -> datetime:
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TokenCodec:
    """Signs and verifies HS256 bearer tokens carrying subject, role and expiry."""

    def __init__(self, secret: str, *, issuer: str, ttl: timedelta = DEFAULT_TTL) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._issuer = issuer
        self._ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            settings.jwt_secret,
            issuer=settings.jwt_issuer,
            ttl=timedelta(seconds=settings.jwt_ttl_seconds),
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, subject_id: str, role: Role | str, now: datetime | None = None) -> str:
        """Create a signed JWT for ``subject_id`` expiring ``ttl`` after ``now``.

        Raises
        ------
        RoleInvalidError
            When ``role`` is not one of the known roles.
        ValidationFailedError
            When ``subject_id`` is not a canonical UUID.
        """
        validate_identifier(subject_id)
        checked_role = parse_role(role)
        issued_at = _as_utc(now)
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": subject_id,
            "role": checked_role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str, now: datetime | None = None) -> TokenClaims:
        """Verify ``token`` and return its typed claims.

        Raises
        ------
        TokenInvalidError
            Wrong algorithm, bad signature, foreign issuer, or a missing or
            malformed ``exp``, ``sub`` or ``role`` claim.
        TokenExpiredError
            When ``exp`` is at or before ``now``.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError(f"could not verify token: {exc}") from exc

        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenInvalidError("token expiration is malformed")
        try:
            expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise TokenInvalidError("token expiration is malformed") from exc
        if expires_at <= _as_utc(now):
            raise TokenExpiredError()

        try:
            claims = _ClaimsPayload.model_validate(payload)
        except ValidationError as exc:
            fields = ", ".join(str(error["loc"][0]) for error in exc.errors() if error["loc"])
            raise TokenInvalidError(f"token claims are malformed: {fields}") from exc

        return TokenClaims(subject=claims.sub, role=claims.role, expires_at=expires_at)
