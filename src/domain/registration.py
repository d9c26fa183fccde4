"""
Registration coordinator - Two-store registration saga.

The identity store and the document store share no transaction boundary,
so a registration runs as a saga with one compensating action.

Saga (Forward-Only Transitions)
===============================

    VALIDATING -> EMAIL_CHECKING -> IDENTITY_CREATING -> TX_COMMITTING
    TX_COMMITTING -> SUCCEEDED
    TX_COMMITTING -> COMPENSATING -> FAILED

Any of VALIDATING, EMAIL_CHECKING and IDENTITY_CREATING may also exit
directly to FAILED; nothing has been created yet at those points.

Compensatable point: once create_identity() returns a handle, every
failure of the document transaction deletes that identity before the
result is returned. Compensation failure is logged, never surfaced.

Known race window: the email pre-check runs outside any transaction, so
two requests for one email can both pass it. The identity store is the
final arbiter and rejects the second create_identity() with
EmailAlreadyExists, which is a plain terminal failure (that request never
created anything to compensate).

The coordinator holds no mutable state shared between calls; all
isolation comes from the stores.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from functools import partial
from typing import Any, TypeVar

from .account import USERS_COLLECTION, account_ref, new_account_document
from .exceptions import (
    CompensationFailed,
    DeleteFailed,
    EmailAlreadyExists,
    IdentityCreateFailed,
    IdentityLookupFailed,
    InvalidInput,
    QuotaExceeded,
    RegistrationError,
    UsernameAlreadyExists,
    WeakCredential,
)
from .outcomes import TRANSITIONS, RegistrationOutcome, SagaState
from .ports import DocumentStore, DocumentTransaction, IdentityStore
from .quota import QuotaTracker, normalize_address
from .validation import DEFAULT_POLICY, ValidationPolicy, normalize_username, validate

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RegistrationRequest:
    """Transport-agnostic registration input."""

    username: Any
    email: Any
    password: Any
    source_address: str | None = None


@dataclass(frozen=True)
class RegistrationResult:
    """Terminal outcome of one saga run."""

    outcome: RegistrationOutcome
    state: SagaState
    uid: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is RegistrationOutcome.SUCCESS


@dataclass
class _Saga:
    state: SagaState = SagaState.VALIDATING
    uid: str | None = None

    def advance(self, new_state: SagaState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal saga transition {self.state.value} -> {new_state.value}")
        logger.debug("Saga %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def fail(self, outcome: RegistrationOutcome) -> RegistrationResult:
        self.advance(SagaState.FAILED)
        return RegistrationResult(outcome=outcome, state=self.state, uid=self.uid)


@dataclass
class RegistrationCoordinator:
    """
    Domain service for account registration.

    Orchestrates validation, the email pre-check, identity creation, the
    document transaction (quota, username uniqueness, account write) and
    compensation when the transaction fails.
    """

    identity_store: IdentityStore
    document_store: DocumentStore
    quota: QuotaTracker = field(default_factory=QuotaTracker)
    policy: ValidationPolicy = DEFAULT_POLICY
    io_timeout_seconds: float = 10.0
    compensation_attempts: int = 3
    compensation_backoff_seconds: float = 0.1

    async def register(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Run the registration saga to a terminal state.

        Never raises for registration failures; every failure kind is
        reported through RegistrationResult.outcome.
        """
        saga = _Saga()

        try:
            validate(request.username, request.email, request.password, self.policy)
        except InvalidInput as exc:
            logger.info("Rejected registration input: %s", exc)
            return saga.fail(exc.outcome)

        username: str = request.username
        email: str = request.email
        address = normalize_address(request.source_address)

        saga.advance(SagaState.EMAIL_CHECKING)
        try:
            existing = await self._bounded(
                self.identity_store.find_by_email(email),
                IdentityLookupFailed("email lookup timed out"),
            )
        except IdentityLookupFailed as exc:
            logger.error("Email lookup failed: %s", exc)
            return saga.fail(exc.outcome)
        except Exception:
            logger.exception("Unexpected error during email lookup")
            return saga.fail(RegistrationOutcome.EMAIL_LOOKUP_FAILED)
        if existing is not None:
            logger.info("Email already registered")
            return saga.fail(RegistrationOutcome.EMAIL_ALREADY_EXISTS)

        saga.advance(SagaState.IDENTITY_CREATING)
        try:
            saga.uid = await self._bounded(
                self.identity_store.create_identity(email, request.password, username),
                IdentityCreateFailed("identity creation timed out"),
            )
        except (EmailAlreadyExists, WeakCredential, IdentityCreateFailed) as exc:
            logger.info("Identity creation rejected: %s", type(exc).__name__)
            return saga.fail(exc.outcome)
        except Exception:
            logger.exception("Unexpected error during identity creation")
            return saga.fail(RegistrationOutcome.IDENTITY_CREATE_FAILED)

        if address is None:
            logger.warning("Source address unavailable, skipping quota check")

        saga.advance(SagaState.TX_COMMITTING)
        try:
            await self.document_store.run_transaction(
                partial(self._write_account, uid=saga.uid, email=email, username=username, address=address)
            )
        except (UsernameAlreadyExists, QuotaExceeded) as exc:
            outcome = exc.outcome
        except RegistrationError as exc:
            logger.error("Registration transaction failed for %s: %r", saga.uid, exc)
            outcome = RegistrationOutcome.TRANSACTION_FAILED
        except asyncio.CancelledError:
            saga.advance(SagaState.COMPENSATING)
            await asyncio.shield(self._compensate(saga.uid))
            raise
        except Exception:
            logger.exception("Unexpected error in registration transaction for %s", saga.uid)
            outcome = RegistrationOutcome.TRANSACTION_FAILED
        else:
            saga.advance(SagaState.SUCCEEDED)
            logger.info(
                "User registered: %s (uid %s) from %s",
                username,
                saga.uid,
                address or "unknown address",
            )
            return RegistrationResult(RegistrationOutcome.SUCCESS, saga.state, saga.uid)

        saga.advance(SagaState.COMPENSATING)
        await self._compensate(saga.uid)
        return saga.fail(outcome)

    async def _write_account(
        self,
        txn: DocumentTransaction,
        *,
        uid: str,
        email: str,
        username: str,
        address: str | None,
    ) -> None:
        if address is not None:
            await self.quota.check_and_reserve(txn, address)

        normalized = normalize_username(username)
        if await txn.query_equals(USERS_COLLECTION, "username", normalized):
            raise UsernameAlreadyExists(normalized)

        txn.set(account_ref(uid), new_account_document(uid, email, username))

    async def _compensate(self, uid: str) -> bool:
        """Delete the identity created by a failed saga, with bounded retries."""
        logger.warning("Deleting orphaned identity %s", uid)
        for attempt in range(1, self.compensation_attempts + 1):
            try:
                await self._bounded(
                    self.identity_store.delete_identity(uid),
                    DeleteFailed("identity delete timed out"),
                )
            except DeleteFailed as exc:
                logger.warning(
                    "Delete of identity %s failed (attempt %d/%d): %s",
                    uid,
                    attempt,
                    self.compensation_attempts,
                    exc,
                )
                if attempt < self.compensation_attempts:
                    await asyncio.sleep(self.compensation_backoff_seconds * attempt)
            else:
                logger.info("Deleted orphaned identity %s", uid)
                return True

        logger.error("Compensation failed: %s", CompensationFailed(uid, self.compensation_attempts))
        return False

    async def _bounded(self, step: Awaitable[T], on_timeout: RegistrationError) -> T:
        try:
            return await asyncio.wait_for(step, timeout=self.io_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise on_timeout from exc
