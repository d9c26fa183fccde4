"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations and infrastructure failures without leaking
infrastructure details. Every exception carries the RegistrationOutcome
it resolves to, so callers branch on types instead of messages.
"""

from .outcomes import RegistrationOutcome


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    outcome = RegistrationOutcome.TRANSACTION_FAILED


class InvalidInput(RegistrationError):
    """Username, email or password failed syntactic validation."""

    outcome = RegistrationOutcome.INVALID_INPUT


class EmailAlreadyExists(RegistrationError):
    """An identity already owns this email."""

    outcome = RegistrationOutcome.EMAIL_ALREADY_EXISTS


class UsernameAlreadyExists(RegistrationError):
    """An account document already holds this normalized username."""

    outcome = RegistrationOutcome.USERNAME_ALREADY_EXISTS


class QuotaExceeded(RegistrationError):
    """Source address reached the registration ceiling."""

    outcome = RegistrationOutcome.QUOTA_EXCEEDED


class WeakCredential(RegistrationError):
    """Identity store rejected the password."""

    outcome = RegistrationOutcome.WEAK_CREDENTIAL


class IdentityLookupFailed(RegistrationError):
    """Email lookup failed for a reason other than not-found."""

    outcome = RegistrationOutcome.EMAIL_LOOKUP_FAILED


class IdentityCreateFailed(RegistrationError):
    """Identity store could not create the identity."""

    outcome = RegistrationOutcome.IDENTITY_CREATE_FAILED


class InvalidEmail(IdentityCreateFailed):
    """Identity store rejected the email format."""

    outcome = RegistrationOutcome.INVALID_INPUT


class TransactionFailed(RegistrationError):
    """Document store transaction could not be committed."""

    outcome = RegistrationOutcome.TRANSACTION_FAILED


class TransactionConflict(TransactionFailed):
    """Transaction aborted by the store after conflicting with another writer."""


class DeleteFailed(RegistrationError):
    """Identity store could not delete an identity."""


class CompensationFailed(RegistrationError):
    """
    Identity created during a failed registration could not be deleted.

    Logged only. Never surfaced to the caller, whose request already
    failed for a reportable reason.
    """

    def __init__(self, uid: str, attempts: int) -> None:
        super().__init__(f"identity {uid} not deleted after {attempts} attempt(s)")
        self.uid = uid
        self.attempts = attempts
