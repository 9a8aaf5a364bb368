"""Application wiring for the user service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
import logging
from typing import AsyncIterator

from psycopg_pool import AsyncConnectionPool

from .config import Settings, get_settings
from .domain.contracts import Notifier, UserStore
from .domain.service import UserService
from .notifier import SMTPNotifier
from .repository import PostgresUserStore
from .security.passwords import PasswordHasher
from .security.tokens import TokenCodec

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_service(settings: Settings, store: UserStore, notifier: Notifier) -> UserService:
    """Assemble a ``UserService`` from settings and already-built collaborators."""
    return UserService(
        store,
        notifier,
        PasswordHasher.from_settings(settings),
        TokenCodec.from_settings(settings),
        app_name=settings.app_name,
        verification_secret=settings.email_verification_secret,
        verification_endpoint=settings.email_verification_endpoint,
        verification_ttl=timedelta(seconds=settings.email_verification_ttl_seconds),
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[UserService]:
    """Open the Postgres pool, yield a wired service, and close the pool on exit."""
    settings = settings or get_settings()
    configure_logging(settings)
    pool = AsyncConnectionPool(settings.database_url, open=False)
    await pool.open()
    logger.info("%s %s started (%s)", settings.app_name, settings.version, settings.environment)
    try:
        yield build_service(settings, PostgresUserStore(pool), SMTPNotifier.from_settings(settings))
    finally:
        await pool.close()
