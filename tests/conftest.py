"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory identity and document stores
- A registration coordinator wired to them
"""

import pytest

from src.adapters.documents.memory import InMemoryDocumentStore
from src.adapters.identity.memory import InMemoryIdentityStore
from src.domain.quota import QuotaTracker
from src.domain.registration import RegistrationCoordinator


@pytest.fixture
def identity_store() -> InMemoryIdentityStore:
    return InMemoryIdentityStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def coordinator(
    identity_store: InMemoryIdentityStore, document_store: InMemoryDocumentStore
) -> RegistrationCoordinator:
    """Coordinator over in-memory stores with the production quota ceiling."""
    return RegistrationCoordinator(
        identity_store=identity_store,
        document_store=document_store,
        quota=QuotaTracker(ceiling=3),
        compensation_backoff_seconds=0,
    )
