"""Document store adapters."""

from .memory import InMemoryDocumentStore
from .postgres import PostgresDocumentStore

__all__ = ["InMemoryDocumentStore", "PostgresDocumentStore"]
