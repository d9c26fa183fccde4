"""
PostgreSQL document store adapter - Implements DocumentStore protocol.

Documents live in one JSONB table keyed by (collection, doc_id). Every
transaction runs at SERIALIZABLE isolation, so PostgreSQL aborts one of
two transactions whose reads and writes overlap (including the
username predicate read). Aborted transactions are retried here; the
registration body is deterministic for a given input, so a retry is
idempotent.

Staged writes are applied just before COMMIT. Transactions that write a
server timestamp take a transaction-scoped advisory lock first, so
timestamps increase in commit order. Increment sentinels
become `COALESCE(field, 0) + n` expressions evaluated against the
committed row, never a client-side read-modify-write.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from src.domain.exceptions import TransactionConflict, TransactionFailed
from src.domain.ports import SERVER_TIMESTAMP, DocumentRef

from .values import split_increments

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (psycopg.errors.SerializationFailure, psycopg.errors.DeadlockDetected)

# Advisory lock serializing server-timestamped commits.
TIMESTAMP_LOCK_KEY = 0x61636374


class PostgresTransaction:
    """Transaction scope bound to one connection inside BEGIN ... COMMIT."""

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn
        self._writes: list[tuple[DocumentRef, dict[str, Any], bool]] = []

    async def get(self, ref: DocumentRef) -> dict[str, Any] | None:
        cursor = await self._conn.execute(
            "SELECT data FROM documents WHERE collection = %s AND doc_id = %s",
            (ref.collection, ref.doc_id),
        )
        row = await cursor.fetchone()
        return row[0] if row is not None else None

    async def query_equals(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        # Literals keep the predicate matching the partial expression index.
        query = sql.SQL(
            "SELECT data FROM documents WHERE collection = {collection} AND data -> {field} = %s ORDER BY doc_id"
        ).format(collection=sql.Literal(collection), field=sql.Literal(field))
        cursor = await self._conn.execute(query, (Jsonb(value),))
        return [row[0] for row in await cursor.fetchall()]

    def set(self, ref: DocumentRef, data: dict[str, Any], merge: bool = False) -> None:
        self._writes.append((ref, data, merge))

    async def apply(self) -> None:
        """Execute staged writes; called once, right before COMMIT."""
        if not self._writes:
            return
        if any(_has_server_timestamp(data) for _, data, _ in self._writes):
            # Held until COMMIT, so timestamp order matches commit order.
            await self._conn.execute("SELECT pg_advisory_xact_lock(%s)", (TIMESTAMP_LOCK_KEY,))
        cursor = await self._conn.execute("SELECT clock_timestamp()")
        row = await cursor.fetchone()
        timestamp: datetime = row[0]

        for ref, data, merge in self._writes:
            values, increments = split_increments(data, timestamp)
            params: list[Any] = [ref.collection, ref.doc_id, Jsonb({**values, **increments})]
            if merge:
                update = sql.SQL("documents.data || %s || {increments}").format(
                    increments=_increment_expression(increments)
                )
                params.append(Jsonb(values))
            else:
                update = sql.SQL("EXCLUDED.data")
            statement = sql.SQL(
                """
                INSERT INTO documents (collection, doc_id, data, updated_at)
                VALUES (%s, %s, %s, NOW())
                ON CONFLICT (collection, doc_id) DO UPDATE
                SET data = {update}, updated_at = NOW()
                """
            ).format(update=update)
            await self._conn.execute(statement, params)


def _has_server_timestamp(data: dict[str, Any]) -> bool:
    return any(value is SERVER_TIMESTAMP for value in data.values())


def _increment_expression(increments: dict[str, int]) -> sql.Composable:
    if not increments:
        return sql.SQL("'{}'::jsonb")
    parts = [
        sql.SQL("{key}, COALESCE((documents.data ->> {key})::bigint, 0) + {amount}").format(
            key=sql.Literal(key), amount=sql.Literal(amount)
        )
        for key, amount in increments.items()
    ]
    return sql.SQL("jsonb_build_object({})").format(sql.SQL(", ").join(parts))


class PostgresDocumentStore:
    """
    Implements DocumentStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        pool: AsyncConnectionPool,
        max_attempts: int = 5,
        body_timeout_seconds: float = 10.0,
    ) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 AsyncConnectionPool for the document database
            max_attempts: Attempts before a serialization conflict is reported
            body_timeout_seconds: Bound on the transaction body, excluding COMMIT
        """
        self._pool = pool
        self._max_attempts = max_attempts
        self._body_timeout_seconds = body_timeout_seconds

    async def run_transaction(self, fn: Callable[[PostgresTransaction], Awaitable[T]]) -> T:
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._attempt(fn)
            except RETRYABLE_ERRORS as exc:
                last_error = exc
                logger.info(
                    "Transaction conflict (attempt %d/%d): %s",
                    attempt,
                    self._max_attempts,
                    type(exc).__name__,
                )
            except psycopg.Error as exc:
                logger.error("Document transaction failed: %s", exc)
                raise TransactionFailed(type(exc).__name__) from exc

        raise TransactionConflict(
            f"transaction aborted after {self._max_attempts} attempt(s)"
        ) from last_error

    async def _attempt(self, fn: Callable[[PostgresTransaction], Awaitable[T]]) -> T:
        async with self._pool.connection() as conn:
            async with conn.transaction():
                await conn.execute("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE")
                txn = PostgresTransaction(conn)
                try:
                    result = await asyncio.wait_for(fn(txn), timeout=self._body_timeout_seconds)
                except asyncio.TimeoutError as exc:
                    raise TransactionConflict("transaction body timed out") from exc
                await txn.apply()
            return result

    async def check_health(self) -> None:
        async with self._pool.connection() as conn:
            await conn.execute("SELECT 1")
