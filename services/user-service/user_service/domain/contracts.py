"""Domain-level request contracts and the collaborator interfaces the service consumes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from .user import EmailVerification, Role, User


@dataclass(slots=True)
class CreateUserInput:
    """Raw self-registration request; validated then discarded, never persisted as-is."""

    full_name: str
    username: str
    birthdate: str
    email: str
    password: str = field(repr=False)
    confirm_password: str = field(repr=False)
    role: Role | str | None = None


class DuplicateRecordError(Exception):
    """Raised by a store when a uniqueness constraint rejects a write."""


class RecordNotFoundError(Exception):
    """Raised by a store when a mutation matched no active record."""


class UserStore(Protocol):
    """Persistence contract for user records.

    ``select_*`` never return soft-deleted users. Any exception other than
    :class:`DuplicateRecordError` and :class:`RecordNotFoundError` is treated
    as an I/O failure.
    """

    async def insert(self, user: User) -> User: ...

    async def select_by_id(self, user_id: str) -> User | None: ...

    async def select_by_email(self, email: str) -> User | None: ...

    async def delete_by_id(self, user_id: str) -> None: ...

    async def insert_email_verification(self, record: EmailVerification) -> None: ...


class Notifier(Protocol):
    """Outbound message delivery."""

    async def send(self, to: str, subject: str, body: str) -> None: ...
