from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

import pytest

from user_service.domain.contracts import DuplicateRecordError, RecordNotFoundError
from user_service.domain.service import UserService
from user_service.domain.user import EmailVerification, User
from user_service.security.passwords import PasswordHasher
from user_service.security.tokens import TokenCodec

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
SIGNING_SECRET = "test-signing-secret-with-enough-entropy"


class FakeStore:
    """In-memory store mimicking the Postgres uniqueness and soft-delete behaviors."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.deleted: set[str] = set()
        self.verifications: list[EmailVerification] = []
        self.insert_calls: list[User] = []
        self.select_calls = 0
        self.fail_with: Exception | None = None
        self.fail_verification_with: Exception | None = None

    def _active(self) -> list[User]:
        return [user for user_id, user in self.users.items() if user_id not in self.deleted]

    async def insert(self, user: User) -> User:
        self.insert_calls.append(user)
        # yield so concurrent inserts interleave before the atomic check below
        await asyncio.sleep(0)
        if self.fail_with:
            raise self.fail_with
        for existing in self._active():
            if existing.email == user.email or existing.username == user.username:
                raise DuplicateRecordError("duplicate record")
        self.users[user.user_id] = replace(user)
        return replace(user)

    async def select_by_id(self, user_id: str) -> User | None:
        self.select_calls += 1
        if self.fail_with:
            raise self.fail_with
        if user_id in self.deleted:
            return None
        return self.users.get(user_id)

    async def select_by_email(self, email: str) -> User | None:
        self.select_calls += 1
        if self.fail_with:
            raise self.fail_with
        for user in self._active():
            if user.email == email:
                return user
        return None

    async def delete_by_id(self, user_id: str) -> None:
        if self.fail_with:
            raise self.fail_with
        if user_id not in self.users or user_id in self.deleted:
            raise RecordNotFoundError(user_id)
        self.deleted.add(user_id)

    async def insert_email_verification(self, record: EmailVerification) -> None:
        if self.fail_verification_with:
            raise self.fail_verification_with
        self.verifications.append(record)


@dataclass
class SentMessage:
    to: str
    subject: str
    body: str


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[SentMessage] = []
        self.fail_with: Exception | None = None

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail_with:
            raise self.fail_with
        self.sent.append(SentMessage(to=to, subject=subject, body=body))


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture()
def codec() -> TokenCodec:
    return TokenCodec(SIGNING_SECRET, issuer="users.test")


@pytest.fixture()
def service(store, notifier, hasher, codec, clock) -> UserService:
    return UserService(
        store,
        notifier,
        hasher,
        codec,
        app_name="accounts",
        verification_secret="verification-secret",
        verification_endpoint="https://example.com/verify/",
        clock=clock,
    )
