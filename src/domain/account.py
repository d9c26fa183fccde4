"""Account document layout."""

from typing import Any

from .ports import SERVER_TIMESTAMP, DocumentRef
from .validation import normalize_username

USERS_COLLECTION = "users"
AVATAR_URL_TEMPLATE = "https://placehold.co/120x120?text={initial}"


def account_ref(uid: str) -> DocumentRef:
    return DocumentRef(USERS_COLLECTION, uid)


def default_avatar_url(username: str) -> str:
    """Placeholder avatar showing the first character of the original username."""
    return AVATAR_URL_TEMPLATE.format(initial=username[0].upper())


def new_account_document(uid: str, email: str, username: str) -> dict[str, Any]:
    """
    Build the account document written at registration.

    username is stored lowercased for uniqueness; displayName keeps the
    original casing. createdAt is assigned by the store at commit.
    """
    return {
        "uid": uid,
        "email": email,
        "username": normalize_username(username),
        "displayName": username,
        "bio": "",
        "avatarUrl": default_avatar_url(username),
        "coverUrl": "",
        "friends": [],
        "blocked": [],
        "needsSetup": False,
        "createdAt": SERVER_TIMESTAMP,
    }
