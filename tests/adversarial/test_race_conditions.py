"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent registrations cannot:
- Create two accounts with one username
- Create two identities with one email
- Exceed the per-address quota
- Leave an identity behind for a registration that lost a race

The document transaction covers quota, username and account write;
the in-memory store aborts and retries any transaction whose reads were
invalidated by a concurrent commit. The email pre-check is outside any
transaction, so same-email races are settled by the identity store.
"""

import pytest

from src.adapters.documents.memory import InMemoryDocumentStore
from src.adapters.identity.memory import InMemoryIdentityStore
from src.domain.outcomes import RegistrationOutcome, SagaState
from src.domain.ports import DocumentRef
from src.domain.quota import QUOTA_COLLECTION
from src.domain.registration import RegistrationRequest

# Apply adversarial marker to all tests in this module
pytestmark = [pytest.mark.adversarial, pytest.mark.asyncio]


class TestRaceConditionAttacks:
    """
    Adversarial tests simulating concurrent registration attacks.

    Each test starts all requests together so that they interleave at
    every store call.
    """

    async def test_same_username_exactly_one_succeeds(
        self,
        register_concurrently,
        identity_store: InMemoryIdentityStore,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """
        Two requests for one username with different emails.

        Expected defense: at most one commit; the loser gets
        UsernameAlreadyExists and its identity is compensated.
        """
        results = await register_concurrently(
            [
                RegistrationRequest("alice", "a1@x.com", "secret1", "1.1.1.1"),
                RegistrationRequest("ALICE", "a2@x.com", "secret1", "2.2.2.2"),
            ]
        )

        outcomes = sorted(result.outcome.value for result in results)
        assert outcomes == ["success", "username_already_exists"]

        winner = next(result for result in results if result.succeeded)
        loser = next(result for result in results if not result.succeeded)
        assert loser.state is SagaState.FAILED
        assert identity_store.get(loser.uid) is None
        assert document_store.get(DocumentRef("users", loser.uid)) is None
        assert len(identity_store) == 1
        assert [doc["uid"] for doc in document_store.documents("users")] == [winner.uid]

    async def test_username_flood_single_winner(
        self,
        register_concurrently,
        identity_store: InMemoryIdentityStore,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """Ten concurrent claims of one username leave one account and one identity."""
        num_attackers = 10
        results = await register_concurrently(
            [
                RegistrationRequest("target", f"attacker{i}@x.com", "secret1", f"10.0.0.{i}")
                for i in range(num_attackers)
            ]
        )

        assert sum(result.succeeded for result in results) == 1
        assert [result.outcome for result in results if not result.succeeded] == [
            RegistrationOutcome.USERNAME_ALREADY_EXISTS
        ] * (num_attackers - 1)
        assert len(identity_store) == 1
        assert len(document_store.documents("users")) == 1

    async def test_same_email_race_settled_by_identity_store(
        self,
        register_concurrently,
        identity_store: InMemoryIdentityStore,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """
        Known race window: both requests pass the email pre-check.

        The identity store rejects the second create_identity(). That
        request never created an identity, so nothing is compensated.
        """
        results = await register_concurrently(
            [
                RegistrationRequest("first", "same@x.com", "secret1", "1.1.1.1"),
                RegistrationRequest("second", "same@x.com", "secret1", "2.2.2.2"),
            ]
        )

        assert sum(result.succeeded for result in results) == 1
        loser = next(result for result in results if not result.succeeded)
        assert loser.outcome is RegistrationOutcome.EMAIL_ALREADY_EXISTS
        assert loser.uid is None
        assert len(identity_store) == 1
        assert len(document_store.documents("users")) == 1

    async def test_quota_not_exceeded_under_concurrency(
        self,
        register_concurrently,
        identity_store: InMemoryIdentityStore,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """Six simultaneous registrations from one address: exactly three succeed."""
        results = await register_concurrently(
            [RegistrationRequest(f"user_{i}", f"u{i}@x.com", "secret1", "6.6.6.6") for i in range(6)]
        )

        outcomes = [result.outcome for result in results]
        assert outcomes.count(RegistrationOutcome.SUCCESS) == 3
        assert outcomes.count(RegistrationOutcome.QUOTA_EXCEEDED) == 3
        assert document_store.get(DocumentRef(QUOTA_COLLECTION, "6.6.6.6")) == {"count": 3}
        assert len(identity_store) == 3
        assert len(document_store.documents("users")) == 3

    async def test_independent_registrations_all_succeed(
        self,
        register_concurrently,
        identity_store: InMemoryIdentityStore,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """Unrelated concurrent registrations do not block each other."""
        results = await register_concurrently(
            [
                RegistrationRequest(f"member_{i}", f"m{i}@x.com", "secret1", f"172.16.0.{i}")
                for i in range(8)
            ]
        )

        assert all(result.succeeded for result in results)
        assert len(identity_store) == 8
        assert len(document_store.documents("users")) == 8
