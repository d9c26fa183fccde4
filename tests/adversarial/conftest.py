"""
Shared fixtures for adversarial tests.

Provides concurrent registration helpers over the in-memory stores,
which interleave coroutines at every store call.
"""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from src.domain.registration import RegistrationCoordinator, RegistrationRequest, RegistrationResult

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial

ConcurrentRegister = Callable[[list[RegistrationRequest]], Awaitable[list[RegistrationResult]]]


@pytest.fixture
def register_concurrently(coordinator: RegistrationCoordinator) -> ConcurrentRegister:
    """Start every request at once and collect results in request order."""

    async def run(requests: list[RegistrationRequest]) -> list[RegistrationResult]:
        return list(await asyncio.gather(*(coordinator.register(request) for request in requests)))

    return run
