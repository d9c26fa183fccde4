"""
Input validation - Syntactic checks performed before any I/O.

Email format is deliberately not checked here: the identity store is
authoritative for it. Only presence is required.
"""

import re
from dataclasses import dataclass
from typing import Any

from .exceptions import InvalidInput

_USERNAME_PATTERN = re.compile(r"[a-z0-9_.]+", re.IGNORECASE | re.ASCII)
_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class ValidationPolicy:
    """Length limits applied by validate(). bcrypt reads at most 72 bytes."""

    min_username_length: int = 3
    min_password_length: int = 6
    max_password_bytes: int = 72


DEFAULT_POLICY = ValidationPolicy()


def validate(
    username: Any, email: Any, password: Any, policy: ValidationPolicy = DEFAULT_POLICY
) -> None:
    """
    Check registration input.

    Raises:
        InvalidInput: Naming the first rule that failed
    """
    if not isinstance(username, str) or not isinstance(email, str) or not isinstance(password, str):
        raise InvalidInput("username, email and password are required")
    if not email:
        raise InvalidInput("email is required")
    if len(username) < policy.min_username_length:
        raise InvalidInput("username too short")
    if _WHITESPACE.search(username):
        raise InvalidInput("username contains whitespace")
    if not _USERNAME_PATTERN.fullmatch(username):
        raise InvalidInput("username contains unsupported characters")
    if len(password) < policy.min_password_length:
        raise InvalidInput("password too short")
    try:
        password_bytes = password.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidInput("password is not valid text") from exc
    if len(password_bytes) > policy.max_password_bytes:
        raise InvalidInput("password too long")


def normalize_username(username: str) -> str:
    """Lowercase form used for uniqueness checks and storage."""
    return username.lower()
