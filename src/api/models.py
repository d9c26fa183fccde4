"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field rules for username/email/password are enforced by the domain
validator, not here, so every malformed body gets the same 400 response.
"""

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    username: str | None = None
    email: str | None = None
    password: str | None = None


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
