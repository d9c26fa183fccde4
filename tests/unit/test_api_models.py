"""
Unit tests for API request/response models.

Tests Pydantic model validation for the registration endpoint.
"""

import pytest
from pydantic import ValidationError

from src.api.models import ErrorResponse, RegisterRequest, RegisterResponse


class TestRegisterRequest:
    """Tests for RegisterRequest model."""

    def test_valid_register_request(self) -> None:
        request = RegisterRequest(username="alice_01", email="a@x.com", password="secret1")
        assert request.username == "alice_01"
        assert request.email == "a@x.com"
        assert request.password == "secret1"

    def test_fields_optional(self) -> None:
        """Missing fields are left to the domain validator."""
        request = RegisterRequest()
        assert request.username is None
        assert request.email is None
        assert request.password is None

    def test_values_not_rewritten(self) -> None:
        """Casing and whitespace reach the domain untouched."""
        request = RegisterRequest(username="Alice 01", email="A@X.COM", password="x")
        assert request.username == "Alice 01"
        assert request.email == "A@X.COM"

    def test_non_string_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username=["alice"], email="a@x.com", password="secret1")


class TestResponses:
    def test_register_response(self) -> None:
        response = RegisterResponse(success=True, message="Registration successful!")
        assert response.model_dump() == {"success": True, "message": "Registration successful!"}

    def test_error_response(self) -> None:
        assert ErrorResponse(error="Email already in use.").model_dump() == {"error": "Email already in use."}
