"""User service orchestrating validation, credential hashing, persistence and token issuance."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import Callable
from urllib.parse import quote
import uuid

from .contracts import CreateUserInput, DuplicateRecordError, Notifier, RecordNotFoundError, UserStore
from .errors import (
    AlreadyExistsError,
    DependencyFailureError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    TokenInvalidError,
    UnknownEmailError,
)
from .user import AuthorizationResult, EmailVerification, Role, User, parse_role
from .validate import (
    validate_create_user_input,
    validate_email_address,
    validate_identifier,
    validate_password,
)
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenCodec

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "{app_name}: account verification"
VERIFICATION_BODY = "Please click the following link to verify your account: {endpoint}/{token}"
DEFAULT_VERIFICATION_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """User lifecycle and authentication workflows.

    The service keeps no mutable state of its own; every call depends only on
    its arguments, the injected collaborators and the clock, so a single
    instance can serve any number of concurrent tasks.
    """

    def __init__(
        self,
        store: UserStore,
        notifier: Notifier,
        hasher: PasswordHasher,
        tokens: TokenCodec,
        *,
        app_name: str,
        verification_secret: str,
        verification_endpoint: str,
        verification_ttl: timedelta = DEFAULT_VERIFICATION_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Store collaborators used to orchestrate persistence, hashing and token issuance."""
        self._store = store
        self._notifier = notifier
        self._hasher = hasher
        self._tokens = tokens
        self._app_name = app_name
        self._verification_secret = verification_secret
        self._verification_endpoint = verification_endpoint.rstrip("/")
        self._verification_ttl = verification_ttl
        self._clock = clock

    async def create(self, payload: CreateUserInput) -> User:
        """Register a new user with the ``user`` role.

        A verification email is dispatched afterwards on a best-effort basis;
        if that fails the user is still created and the failure is only logged.

        Raises
        ------
        ValidationFailedError
            When any input field is malformed or the password confirmation differs.
        RoleInvalidError
            When the requested role is not a known role.
        ForbiddenError
            When the request asks for the ``admin`` role.
        AlreadyExistsError
            When an active user already owns the email or username.
        DependencyFailureError
            When the store fails.
        """
        birthdate = validate_create_user_input(payload)

        if payload.role is not None and parse_role(payload.role) is Role.admin:
            raise ForbiddenError()

        password_hash = await asyncio.to_thread(self._hasher.hash, payload.password)

        now = self._clock()
        candidate = User(
            user_id=str(uuid.uuid4()),
            full_name=payload.full_name,
            username=payload.username,
            birthdate=birthdate,
            email=payload.email,
            password_hash=password_hash,
            role=Role.user,
            created_at=now,
            updated_at=now,
            email_verified=False,
        )

        try:
            user = await self._store.insert(candidate)
        except DuplicateRecordError as exc:
            raise AlreadyExistsError() from exc
        except Exception as exc:
            raise DependencyFailureError("store", exc, "could not insert user") from exc

        logger.info("user created id=%s", user.user_id)

        try:
            await self.send_email_verification(user.user_id, user.email)
        except Exception:
            # the user can request another verification email later
            logger.exception("could not send email verification user_id=%s", user.user_id)

        return user

    async def fetch_by_id(self, user_id: str) -> User:
        """Return the active user identified by ``user_id``.

        Raises ``ValidationFailedError`` for a malformed id without touching the
        store, and ``NotFoundError`` when no active user matches.
        """
        validate_identifier(user_id)
        user = await self._select_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    async def delete(self, user_id: str) -> None:
        """Soft-delete the user identified by ``user_id``."""
        validate_identifier(user_id)
        try:
            await self._store.delete_by_id(user_id)
        except RecordNotFoundError as exc:
            raise NotFoundError() from exc
        except Exception as exc:
            raise DependencyFailureError("store", exc, "could not delete user") from exc
        logger.info("user deleted id=%s", user_id)

    async def generate_token(self, email: str, password: str) -> str:
        """Exchange an email and password for a signed bearer token.

        Raises
        ------
        UnknownEmailError
            When no active user owns ``email``. It is also an
            ``InvalidCredentialsError``.
        InvalidCredentialsError
            When the password does not match.
        """
        validate_email_address(email)
        validate_password(password)

        try:
            user = await self._store.select_by_email(email)
        except Exception as exc:
            raise DependencyFailureError("store", exc, "could not select user by email") from exc

        if user is None:
            logger.info("token requested for unknown email")
            raise UnknownEmailError()

        matches = await asyncio.to_thread(self._hasher.verify, user.password_hash, password)
        if not matches:
            logger.warning("invalid password for user id=%s", user.user_id)
            raise InvalidCredentialsError()

        token = self._tokens.issue(user.user_id, user.role, self._clock())
        logger.info("token issued user_id=%s role=%s", user.user_id, user.role.value)
        return token

    async def verify_token(self, token: str) -> AuthorizationResult:
        """Resolve a bearer token to the identity it grants.

        The subject is looked up again so tokens of deleted users stop working
        before they expire.

        Raises
        ------
        TokenInvalidError
            Empty, forged, foreign or malformed tokens.
        TokenExpiredError
            Tokens past their expiry.
        NotFoundError
            When the subject no longer resolves to an active user.
        """
        if not token:
            raise TokenInvalidError("token is required")

        claims = self._tokens.verify(token, self._clock())

        user = await self._select_by_id(claims.subject)
        if user is None:
            raise NotFoundError()

        return AuthorizationResult(user_id=user.user_id, username=user.username, role=claims.role)

    async def send_email_verification(self, user_id: str, to: str) -> EmailVerification:
        """Persist a verification code for ``user_id`` and mail the link to ``to``.

        Both a store failure and a notifier failure are raised to the caller
        as ``DependencyFailureError``.
        """
        validate_identifier(user_id)
        validate_email_address(to)

        code = await asyncio.to_thread(self._hasher.hash, to + self._verification_secret)

        now = self._clock()
        record = EmailVerification(
            code=code,
            user_id=user_id,
            created_at=now,
            expires_at=now + self._verification_ttl,
        )
        try:
            await self._store.insert_email_verification(record)
        except Exception as exc:
            raise DependencyFailureError("store", exc, "could not insert email verification") from exc

        subject = VERIFICATION_SUBJECT.format(app_name=self._app_name)
        body = VERIFICATION_BODY.format(
            endpoint=self._verification_endpoint,
            token=quote(code, safe=""),
        )
        try:
            await self._notifier.send(to, subject, body)
        except Exception as exc:
            raise DependencyFailureError("notifier", exc, "could not send email") from exc

        logger.info("email verification sent user_id=%s", user_id)
        return record

    async def _select_by_id(self, user_id: str) -> User | None:
        try:
            return await self._store.select_by_id(user_id)
        except Exception as exc:
            raise DependencyFailureError("store", exc, "could not select user by id") from exc
