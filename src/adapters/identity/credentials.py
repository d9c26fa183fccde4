"""
Credential checks shared by identity store adapters.

The identity store is authoritative for email format and password
strength, so these rules live with the adapters, not the domain.
"""

import secrets

import bcrypt
from email_validator import EmailNotValidError, validate_email

from src.domain.exceptions import InvalidEmail, WeakCredential

BCRYPT_MAX_PASSWORD_BYTES = 72


def check_email(email: str) -> None:
    """
    Raises:
        InvalidEmail: Email is not syntactically valid
    """
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise InvalidEmail(str(exc)) from exc


def check_password(password: str, min_length: int) -> None:
    """
    Raises:
        WeakCredential: Password shorter than the provider minimum, or
            not hashable by bcrypt
    """
    if len(password) < min_length:
        raise WeakCredential(f"password shorter than {min_length} characters")
    try:
        encoded = password.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise WeakCredential("password is not valid UTF-8 text") from exc
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise WeakCredential(f"password longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")


def new_uid() -> str:
    """Opaque 28-character identity handle."""
    return secrets.token_hex(14)


def hash_password(password: str, cost: int) -> str:
    """bcrypt hash with the given work factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=cost)).decode()
