"""
PostgreSQL identity store adapter - Implements IdentityStore protocol.

This module provides the identity provider as its own PostgreSQL
database, reached through its own connection pool. It never shares a
transaction with the document store.

Email uniqueness is enforced by the UNIQUE constraint on identities.email,
which makes this store the final arbiter when two registrations for the
same email race past the pre-check.
"""

import asyncio
import logging

import psycopg
from psycopg_pool import AsyncConnectionPool

from src.domain.exceptions import (
    DeleteFailed,
    EmailAlreadyExists,
    IdentityCreateFailed,
    IdentityLookupFailed,
)

from .credentials import check_email, check_password, hash_password, new_uid

logger = logging.getLogger(__name__)


class PostgresIdentityStore:
    """
    Implements IdentityStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(
        self, pool: AsyncConnectionPool, min_password_length: int = 6, bcrypt_cost: int = 10
    ) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 AsyncConnectionPool for the identity database
            min_password_length: Shortest password the provider accepts
            bcrypt_cost: bcrypt work factor for stored password hashes
        """
        self._pool = pool
        self._min_password_length = min_password_length
        self._bcrypt_cost = bcrypt_cost

    async def find_by_email(self, email: str) -> str | None:
        sql = "SELECT uid FROM identities WHERE email = %s"
        try:
            async with self._pool.connection() as conn:
                cursor = await conn.execute(sql, (email,))
                row = await cursor.fetchone()
        except psycopg.Error as exc:
            raise IdentityLookupFailed(type(exc).__name__) from exc
        return row[0] if row is not None else None

    async def create_identity(self, email: str, password: str, display_name: str) -> str:
        """
        Create an identity row.

        Format and strength checks run before any I/O. The password is
        hashed off the event loop; bcrypt is deliberately slow.
        """
        check_email(email)
        check_password(password, self._min_password_length)
        password_hash = await asyncio.to_thread(hash_password, password, self._bcrypt_cost)
        uid = new_uid()

        sql = """
            INSERT INTO identities (uid, email, password_hash, display_name, created_at)
            VALUES (%s, %s, %s, %s, NOW())
        """
        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql, (uid, email, password_hash, display_name))
                await conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise EmailAlreadyExists(email) from exc
        except psycopg.Error as exc:
            raise IdentityCreateFailed(type(exc).__name__) from exc

        logger.info("Identity created: %s", uid)
        return uid

    async def delete_identity(self, uid: str) -> None:
        sql = "DELETE FROM identities WHERE uid = %s"
        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql, (uid,))
                await conn.commit()
        except psycopg.Error as exc:
            raise DeleteFailed(type(exc).__name__) from exc

    async def check_health(self) -> None:
        async with self._pool.connection() as conn:
            await conn.execute("SELECT 1")
