"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, Request

from src.config.settings import Settings, get_settings
from src.domain.ports import DocumentStore, IdentityStore
from src.domain.quota import QuotaTracker, normalize_address
from src.domain.registration import RegistrationCoordinator
from src.domain.validation import ValidationPolicy


def get_identity_store(request: Request) -> IdentityStore:
    """
    Get identity store from app state.

    The store is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.identity_store


def get_document_store(request: Request) -> DocumentStore:
    """Get document store from app state."""
    return request.app.state.document_store


def build_coordinator(
    settings: Settings, identity_store: IdentityStore, document_store: DocumentStore
) -> RegistrationCoordinator:
    """Wire the registration coordinator from settings and stores."""
    return RegistrationCoordinator(
        identity_store=identity_store,
        document_store=document_store,
        quota=QuotaTracker(ceiling=settings.quota_ceiling),
        policy=ValidationPolicy(
            min_username_length=settings.min_username_length,
            min_password_length=settings.min_password_length,
        ),
        io_timeout_seconds=settings.io_timeout_seconds,
        compensation_attempts=settings.compensation_attempts,
        compensation_backoff_seconds=settings.compensation_backoff_seconds,
    )


def get_registration_coordinator(
    request: Request, settings: Settings = Depends(get_settings)
) -> RegistrationCoordinator:
    """
    Create registration coordinator with injected dependencies.

    Wires together both stores for the domain service.
    """
    return build_coordinator(settings, get_identity_store(request), get_document_store(request))


def get_source_address(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    """
    Resolve the client address used for the registration quota.

    The first X-Forwarded-For entry wins when the deployment sits behind
    a trusted proxy; otherwise the socket peer address is used. Returns
    None when neither is available.
    """
    raw: str | None = None
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            raw = forwarded.split(",")[0]
    if not raw and request.client is not None:
        raw = request.client.host
    return normalize_address(raw)
