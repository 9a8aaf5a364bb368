"""Database repository for user records and email verifications."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import AsyncConnectionPool

from .domain.contracts import DuplicateRecordError, RecordNotFoundError
from .domain.user import EmailVerification, User, parse_role

_USER_COLUMNS = (
    "id, fullname, username, birthdate, email, email_verified, "
    "password_hash, role, created_at, updated_at"
)


class PostgresUserStore:
    """Postgres-backed user persistence with soft-delete semantics."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    async def insert(self, user: User) -> User:
        """Persist a new user; raise ``DuplicateRecordError`` on a uniqueness conflict."""
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    await cur.execute(
                        f"""
                        INSERT INTO users ({_USER_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_USER_COLUMNS}
                        """,
                        (
                            user.user_id,
                            user.full_name,
                            user.username,
                            user.birthdate,
                            user.email,
                            user.email_verified,
                            user.password_hash,
                            user.role.value,
                            user.created_at,
                            user.updated_at,
                        ),
                    )
                except pg_errors.UniqueViolation as exc:
                    await conn.rollback()
                    raise DuplicateRecordError(str(exc)) from exc
                row = await cur.fetchone()
                await conn.commit()
        return self._map_record(row)

    async def select_by_id(self, user_id: str) -> User | None:
        """Fetch an active user by identifier or return ``None``."""
        return await self._select_one("id", user_id)

    async def select_by_email(self, email: str) -> User | None:
        """Fetch an active user by email or return ``None``."""
        return await self._select_one("email", email)

    async def _select_one(self, column: str, value: str) -> User | None:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=tuple_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_USER_COLUMNS}
                    FROM users
                    WHERE {column} = %s AND deleted_at IS NULL
                    """,
                    (value,),
                )
                row = await cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    async def delete_by_id(self, user_id: str) -> None:
        """Soft-delete an active user; raise ``RecordNotFoundError`` if none matched."""
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE users
                    SET deleted_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND deleted_at IS NULL
                    """,
                    (user_id,),
                )
                affected = cur.rowcount
                await conn.commit()
        if affected == 0:
            raise RecordNotFoundError(f"user {user_id} not found")

    async def insert_email_verification(self, record: EmailVerification) -> None:
        """Persist a pending email verification code."""
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO email_verifications (code, user_id, created_at, expires_at)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (record.code, record.user_id, record.created_at, record.expires_at),
                )
                await conn.commit()

    def _map_record(self, row: tuple[Any, ...]) -> User:
        """Convert a raw database tuple into the domain ``User`` dataclass."""
        birthdate = row[3]
        if not isinstance(birthdate, date):
            birthdate = date.fromisoformat(str(birthdate))
        created_at: datetime = row[8]
        updated_at: datetime = row[9]
        return User(
            user_id=str(row[0]),
            full_name=row[1],
            username=row[2],
            birthdate=birthdate,
            email=row[4],
            email_verified=row[5],
            password_hash=row[6],
            role=parse_role(row[7]),
            created_at=created_at,
            updated_at=updated_at,
        )
