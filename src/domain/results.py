"""
Result mapping - Stable external contract for registration outcomes.

Each outcome maps to exactly one status code and user-facing message.
Internal causes (store error codes, exception text) never appear here.
"""

from dataclasses import dataclass
from typing import Any

from .outcomes import RegistrationOutcome

GENERIC_FAILURE_MESSAGE = "Registration failed. Please try again."


@dataclass(frozen=True)
class RegistrationResponse:
    """Transport-agnostic response: HTTP-style status code plus message."""

    status_code: int
    success: bool
    message: str

    def body(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "message": self.message}
        return {"error": self.message}


_RESPONSES: dict[RegistrationOutcome, tuple[int, str]] = {
    RegistrationOutcome.SUCCESS: (200, "Registration successful!"),
    RegistrationOutcome.INVALID_INPUT: (400, "Invalid registration data."),
    RegistrationOutcome.EMAIL_ALREADY_EXISTS: (409, "Email already in use."),
    RegistrationOutcome.USERNAME_ALREADY_EXISTS: (409, "Username already in use."),
    RegistrationOutcome.QUOTA_EXCEEDED: (429, "Address registration limit reached."),
    RegistrationOutcome.WEAK_CREDENTIAL: (400, "Password must be at least 6 characters."),
    RegistrationOutcome.EMAIL_LOOKUP_FAILED: (503, "Could not verify email. Please try again."),
    RegistrationOutcome.IDENTITY_CREATE_FAILED: (500, GENERIC_FAILURE_MESSAGE),
    RegistrationOutcome.TRANSACTION_FAILED: (500, GENERIC_FAILURE_MESSAGE),
}


def map_outcome(outcome: RegistrationOutcome) -> RegistrationResponse:
    """Translate a registration outcome into its response."""
    status_code, message = _RESPONSES[outcome]
    return RegistrationResponse(
        status_code=status_code,
        success=outcome is RegistrationOutcome.SUCCESS,
        message=message,
    )
