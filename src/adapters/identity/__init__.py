"""Identity store adapters."""

from .memory import InMemoryIdentityStore
from .postgres import PostgresIdentityStore

__all__ = ["InMemoryIdentityStore", "PostgresIdentityStore"]
