"""
Unit tests for PostgresTransaction write application.

Uses a mocked connection; statements are inspected, not executed.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from src.adapters.documents.postgres import TIMESTAMP_LOCK_KEY, PostgresTransaction
from src.domain.ports import SERVER_TIMESTAMP, DocumentRef, Increment

pytestmark = pytest.mark.asyncio

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_connection() -> Mock:
    cursor = Mock()
    cursor.fetchone = AsyncMock(return_value=(NOW,))
    conn = Mock()
    conn.execute = AsyncMock(return_value=cursor)
    return conn


def executed(conn: Mock) -> list:
    return [call.args[0] for call in conn.execute.call_args_list]


class TestApply:
    async def test_no_writes_executes_nothing(self) -> None:
        conn = make_connection()

        await PostgresTransaction(conn).apply()

        conn.execute.assert_not_awaited()

    async def test_timestamped_write_locks_before_reading_clock(self) -> None:
        conn = make_connection()
        txn = PostgresTransaction(conn)
        txn.set(DocumentRef("users", "u1"), {"username": "alice", "createdAt": SERVER_TIMESTAMP})

        await txn.apply()

        statements = executed(conn)
        assert statements[0] == "SELECT pg_advisory_xact_lock(%s)"
        assert conn.execute.call_args_list[0].args[1] == (TIMESTAMP_LOCK_KEY,)
        assert statements[1] == "SELECT clock_timestamp()"
        assert len(statements) == 3

    async def test_timestamp_written_as_iso_string(self) -> None:
        conn = make_connection()
        txn = PostgresTransaction(conn)
        txn.set(DocumentRef("users", "u1"), {"createdAt": SERVER_TIMESTAMP})

        await txn.apply()

        params = conn.execute.call_args_list[-1].args[1]
        assert params[0] == "users"
        assert params[1] == "u1"
        assert params[2].obj == {"createdAt": NOW.isoformat()}

    async def test_counter_only_write_takes_no_lock(self) -> None:
        conn = make_connection()
        txn = PostgresTransaction(conn)
        txn.set(DocumentRef("ipRegistrationCounts", "1.2.3.4"), {"count": Increment(1)}, merge=True)

        await txn.apply()

        assert "SELECT pg_advisory_xact_lock(%s)" not in executed(conn)
