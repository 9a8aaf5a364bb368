"""Pure input validators.

Each validator returns ``None`` (or the parsed value) on success and raises
:class:`ValidationFailedError` naming the field and the specific reason
otherwise. None of them touch I/O or shared state.
"""

from __future__ import annotations

from datetime import date
import re
import uuid

import email_validator
from email_validator import EmailNotValidError, validate_email

from .contracts import CreateUserInput
from .errors import ValidationFailedError, ValidationReason

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 64
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
# RFC 5321 path limit; email-validator enforces the same bound
MAX_EMAIL_LENGTH = 254

_BIRTHDATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Addresses are checked for syntax only, so reserved names such as
# localhost, .local and .test are valid registrations here.
email_validator.SPECIAL_USE_DOMAIN_NAMES = []


def _check_length(field: str, value: str, minimum: int, maximum: int) -> None:
    if len(value) < minimum:
        raise ValidationFailedError(
            field, ValidationReason.too_short, f"{field} must be at least {minimum} characters"
        )
    if len(value) > maximum:
        raise ValidationFailedError(
            field, ValidationReason.too_long, f"{field} must be at most {maximum} characters"
        )


def validate_full_name(value: str, field: str = "full_name") -> None:
    """Accept letters and spaces only, 3 to 64 characters."""
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    _check_length(field, value, MIN_NAME_LENGTH, MAX_NAME_LENGTH)
    if not all(char.isalpha() or char == " " for char in value):
        raise ValidationFailedError(
            field, ValidationReason.invalid_format, f"{field} must only contain letters and spaces"
        )


def validate_username(value: str, field: str = "username") -> None:
    """Accept letters and digits only, 3 to 64 characters."""
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    _check_length(field, value, MIN_NAME_LENGTH, MAX_NAME_LENGTH)
    if not value.isalnum():
        raise ValidationFailedError(
            field, ValidationReason.invalid_format, f"{field} must only contain letters and digits"
        )


def validate_birthdate(value: str, field: str = "birthdate") -> date:
    """Parse a ``YYYY-MM-DD`` calendar date. Past/future ranges are not checked."""
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    if not _BIRTHDATE_PATTERN.match(value):
        raise ValidationFailedError(
            field, ValidationReason.invalid_format, f"{field} must be in the format YYYY-MM-DD"
        )
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationFailedError(
            field, ValidationReason.invalid_format, f"{field} is not a valid calendar date"
        ) from exc


def validate_email_address(value: str, field: str = "email") -> None:
    """Check address syntax only; no DNS or MX lookups are made."""
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValidationFailedError(
            field, ValidationReason.too_long, f"{field} must be at most {MAX_EMAIL_LENGTH} characters"
        )
    try:
        validate_email(
            value,
            check_deliverability=False,
            globally_deliverable=False,
            allow_quoted_local=True,
            allow_domain_literal=True,
        )
    except EmailNotValidError as exc:
        raise ValidationFailedError(field, ValidationReason.invalid_format, f"{field} is invalid") from exc


def validate_password(value: str, field: str = "password") -> None:
    """Require 8 to 128 characters mixing a letter, a digit and a symbol."""
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    _check_length(field, value, MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH)

    has_letter = has_digit = has_special = False
    for char in value:
        if char.isalpha():
            has_letter = True
        elif char.isdigit():
            has_digit = True
        else:
            has_special = True

    if not (has_letter and has_digit and has_special):
        raise ValidationFailedError(
            field,
            ValidationReason.invalid_format,
            f"{field} must contain at least one number, one letter and one special character",
        )


def validate_identifier(value: str, field: str = "id") -> None:
    """Require a UUID in canonical hyphenated form."""
    if not isinstance(value, str):
        raise ValidationFailedError(field, ValidationReason.invalid_format, f"{field} must be a string")
    if not value:
        raise ValidationFailedError(field, ValidationReason.required, f"{field} is required")
    try:
        parsed = uuid.UUID(value)
    except (ValueError, TypeError) as exc:
        raise ValidationFailedError(field, ValidationReason.invalid_format, f"{field} is not a valid UUID") from exc
    if str(parsed) != value.lower():
        raise ValidationFailedError(field, ValidationReason.invalid_format, f"{field} is not a valid UUID")


def validate_create_user_input(payload: CreateUserInput) -> date:
    """Validate a registration request and return its parsed birthdate."""
    validate_full_name(payload.full_name)
    validate_username(payload.username)
    birthdate = validate_birthdate(payload.birthdate)
    validate_email_address(payload.email)
    validate_password(payload.password)
    if payload.password != payload.confirm_password:
        raise ValidationFailedError(
            "confirm_password",
            ValidationReason.mismatch,
            "password and confirm password do not match",
        )
    return birthdate
