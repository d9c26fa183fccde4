"""Registration outcomes and saga states."""

from enum import Enum


class RegistrationOutcome(Enum):
    """
    Terminal result of a registration attempt.

    Used by RegistrationCoordinator.register() to indicate success or the
    specific failure kind; the result mapper turns it into a response.
    """

    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    USERNAME_ALREADY_EXISTS = "username_already_exists"
    QUOTA_EXCEEDED = "quota_exceeded"
    WEAK_CREDENTIAL = "weak_credential"
    EMAIL_LOOKUP_FAILED = "email_lookup_failed"
    IDENTITY_CREATE_FAILED = "identity_create_failed"
    TRANSACTION_FAILED = "transaction_failed"


class SagaState(str, Enum):
    """
    Registration saga states.

    State Transitions (forward-only):
    - VALIDATING -> EMAIL_CHECKING | FAILED
    - EMAIL_CHECKING -> IDENTITY_CREATING | FAILED
    - IDENTITY_CREATING -> TX_COMMITTING | FAILED
    - TX_COMMITTING -> SUCCEEDED | COMPENSATING
    - COMPENSATING -> FAILED

    Terminal States:
    - SUCCEEDED: Account document committed, identity kept
    - FAILED: No account document exists for this attempt
    """

    VALIDATING = "VALIDATING"
    EMAIL_CHECKING = "EMAIL_CHECKING"
    IDENTITY_CREATING = "IDENTITY_CREATING"
    TX_COMMITTING = "TX_COMMITTING"
    COMPENSATING = "COMPENSATING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


TRANSITIONS: dict[SagaState, frozenset[SagaState]] = {
    SagaState.VALIDATING: frozenset({SagaState.EMAIL_CHECKING, SagaState.FAILED}),
    SagaState.EMAIL_CHECKING: frozenset({SagaState.IDENTITY_CREATING, SagaState.FAILED}),
    SagaState.IDENTITY_CREATING: frozenset({SagaState.TX_COMMITTING, SagaState.FAILED}),
    SagaState.TX_COMMITTING: frozenset({SagaState.SUCCEEDED, SagaState.COMPENSATING}),
    SagaState.COMPENSATING: frozenset({SagaState.FAILED}),
    SagaState.SUCCEEDED: frozenset(),
    SagaState.FAILED: frozenset(),
}
