"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration saga that coordinates an identity
store and a transactional document store. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .exceptions import (
    CompensationFailed,
    DeleteFailed,
    EmailAlreadyExists,
    IdentityCreateFailed,
    IdentityLookupFailed,
    InvalidEmail,
    InvalidInput,
    QuotaExceeded,
    RegistrationError,
    TransactionConflict,
    TransactionFailed,
    UsernameAlreadyExists,
    WeakCredential,
)
from .outcomes import RegistrationOutcome, SagaState
from .ports import SERVER_TIMESTAMP, DocumentRef, DocumentStore, DocumentTransaction, IdentityStore, Increment
from .quota import QuotaTracker, normalize_address
from .registration import RegistrationCoordinator, RegistrationRequest, RegistrationResult
from .results import RegistrationResponse, map_outcome
from .validation import ValidationPolicy, validate

__all__ = [
    "SERVER_TIMESTAMP",
    "CompensationFailed",
    "DeleteFailed",
    "DocumentRef",
    "DocumentStore",
    "DocumentTransaction",
    "EmailAlreadyExists",
    "IdentityCreateFailed",
    "IdentityLookupFailed",
    "IdentityStore",
    "Increment",
    "InvalidEmail",
    "InvalidInput",
    "QuotaExceeded",
    "QuotaTracker",
    "RegistrationCoordinator",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationRequest",
    "RegistrationResponse",
    "RegistrationResult",
    "SagaState",
    "TransactionConflict",
    "TransactionFailed",
    "UsernameAlreadyExists",
    "ValidationPolicy",
    "WeakCredential",
    "map_outcome",
    "normalize_address",
    "validate",
]
