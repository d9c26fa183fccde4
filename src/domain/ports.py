"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

Two independent stores are involved and they share no transaction:
- IdentityStore owns email/password and issues opaque identity handles.
- DocumentStore owns account documents and quota counters and supports
  multi-document atomic transactions.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class DocumentRef:
    """Address of a document: collection name plus document id."""

    collection: str
    doc_id: str


@dataclass(frozen=True)
class Increment:
    """
    Atomic increment sentinel for DocumentTransaction.set().

    Resolved by the store at commit time against the committed value,
    so concurrent increments never lose updates. Absent fields count as 0.
    """

    amount: int = 1


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Replaced by the store's commit time when the write is applied.
SERVER_TIMESTAMP = _ServerTimestamp()


class IdentityStore(Protocol):
    """Port interface for the external identity provider."""

    async def find_by_email(self, email: str) -> str | None:
        """
        Look up the identity handle owning an email.

        Returns:
            Identity handle, or None when no identity owns the email

        Raises:
            IdentityLookupFailed: Any failure other than not-found
        """
        ...

    async def create_identity(self, email: str, password: str, display_name: str) -> str:
        """
        Create an identity and return its handle.

        Raises:
            EmailAlreadyExists: Email is owned by another identity
            WeakCredential: Password rejected by the provider
            InvalidEmail: Email format rejected by the provider
            IdentityCreateFailed: Any other failure
        """
        ...

    async def delete_identity(self, uid: str) -> None:
        """
        Delete an identity. Deleting a missing identity succeeds.

        Raises:
            DeleteFailed: Identity could not be deleted
        """
        ...

    async def check_health(self) -> None:
        """Raise if the store is unreachable."""
        ...


class DocumentTransaction(Protocol):
    """Operations valid only inside a single DocumentStore transaction."""

    async def get(self, ref: DocumentRef) -> dict[str, Any] | None:
        """Read a document from the transaction snapshot, None if absent."""
        ...

    async def query_equals(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Return documents in collection whose field equals value, ordered by id."""
        ...

    def set(self, ref: DocumentRef, data: dict[str, Any], merge: bool = False) -> None:
        """
        Stage a write applied atomically at commit.

        Values may be Increment(n) or SERVER_TIMESTAMP sentinels. With
        merge=True only the given fields are replaced.
        """
        ...


class DocumentStore(Protocol):
    """Port interface for the transactional document store."""

    async def run_transaction(self, fn: Callable[[DocumentTransaction], Awaitable[T]]) -> T:
        """
        Run fn inside a transaction and commit its staged writes.

        RegistrationError raised by fn aborts the transaction and propagates
        unchanged. Conflicts are retried idempotently by the adapter.

        Raises:
            TransactionConflict: Conflicts persisted or fn timed out
            TransactionFailed: Store unavailable or any other store error
        """
        ...

    async def check_health(self) -> None:
        """Raise if the store is unreachable."""
        ...
