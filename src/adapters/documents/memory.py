"""
In-memory document store adapter - Implements DocumentStore protocol.

Transactions use optimistic concurrency control:

1. A transaction remembers the commit version current when it started.
2. get() records the document reference; query_equals() records the
   (collection, field, value) predicate.
3. At commit the read set and the predicates are validated against every
   commit made since the snapshot. Any overlap aborts the transaction
   with TransactionConflict, and run_transaction() retries it.

Validation and application happen without yielding to the event loop,
so a commit is atomic with respect to other coroutines. Two
registrations racing for one username therefore end with exactly one
commit; the loser's retry sees the winner's document.
"""

import asyncio
import copy
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from src.domain.exceptions import TransactionConflict
from src.domain.ports import DocumentRef

from .values import apply_write

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _Commit:
    version: int
    ref: DocumentRef
    before: dict[str, Any] | None
    after: dict[str, Any]


class InMemoryTransaction:
    """Transaction scope handed to run_transaction() callbacks."""

    def __init__(self, store: "InMemoryDocumentStore", snapshot: int) -> None:
        self._store = store
        self.snapshot = snapshot
        self.reads: set[DocumentRef] = set()
        self.queries: list[tuple[str, str, Any]] = []
        self.writes: list[tuple[DocumentRef, dict[str, Any], bool]] = []

    async def get(self, ref: DocumentRef) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self.reads.add(ref)
        return self._store.get(ref)

    async def query_equals(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        self.queries.append((collection, field, value))
        return [
            doc for doc in self._store.documents(collection) if field in doc and doc[field] == value
        ]

    def set(self, ref: DocumentRef, data: dict[str, Any], merge: bool = False) -> None:
        self.writes.append((ref, data, merge))


class InMemoryDocumentStore:
    """
    Implements DocumentStore protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, max_attempts: int = 5, body_timeout_seconds: float = 10.0) -> None:
        self._max_attempts = max_attempts
        self._body_timeout_seconds = body_timeout_seconds
        self._docs: dict[DocumentRef, dict[str, Any]] = {}
        self._versions: dict[DocumentRef, int] = {}
        self._log: list[_Commit] = []
        self._active: Counter[int] = Counter()
        self._version = 0
        self._last_timestamp = datetime.min.replace(tzinfo=timezone.utc)

    async def run_transaction(self, fn: Callable[[InMemoryTransaction], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            txn = InMemoryTransaction(self, self._version)
            self._active[txn.snapshot] += 1
            try:
                try:
                    result = await asyncio.wait_for(fn(txn), timeout=self._body_timeout_seconds)
                except asyncio.TimeoutError as exc:
                    raise TransactionConflict("transaction body timed out") from exc
                if self._validate(txn):
                    self._apply(txn)
                    return result
            finally:
                self._release(txn.snapshot)
            logger.debug("Transaction conflict (attempt %d/%d)", attempt, self._max_attempts)
            await asyncio.sleep(0)

        raise TransactionConflict(f"transaction aborted after {self._max_attempts} attempt(s)")

    async def check_health(self) -> None:
        return None

    def get(self, ref: DocumentRef) -> dict[str, Any] | None:
        """Committed content of a document, outside any transaction."""
        doc = self._docs.get(ref)
        return copy.deepcopy(doc) if doc is not None else None

    def documents(self, collection: str) -> list[dict[str, Any]]:
        """Committed documents of a collection ordered by id."""
        return [
            copy.deepcopy(self._docs[ref])
            for ref in sorted(self._docs, key=lambda r: r.doc_id)
            if ref.collection == collection
        ]

    def _validate(self, txn: InMemoryTransaction) -> bool:
        for ref in txn.reads:
            if self._versions.get(ref, 0) > txn.snapshot:
                return False
        for collection, field, value in txn.queries:
            for commit in self._log:
                if commit.version <= txn.snapshot or commit.ref.collection != collection:
                    continue
                for doc in (commit.before, commit.after):
                    if doc is not None and field in doc and doc[field] == value:
                        return False
        return True

    def _apply(self, txn: InMemoryTransaction) -> None:
        if not txn.writes:
            return
        self._version += 1
        timestamp = self._next_timestamp()
        for ref, data, merge in txn.writes:
            before = self._docs.get(ref)
            after = apply_write(before, data, merge, timestamp)
            self._docs[ref] = after
            self._versions[ref] = self._version
            self._log.append(_Commit(self._version, ref, before, after))

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _release(self, snapshot: int) -> None:
        self._active[snapshot] -= 1
        if self._active[snapshot] <= 0:
            del self._active[snapshot]
        oldest = min(self._active, default=self._version)
        self._log = [commit for commit in self._log if commit.version > oldest]
