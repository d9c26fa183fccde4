"""
In-memory identity store adapter - Implements IdentityStore protocol.

For development and tests. Every operation yields to the event loop
once, so concurrent registrations interleave at the same points they
would against a remote provider.
"""

import asyncio
import logging
from dataclasses import dataclass

from src.domain.exceptions import EmailAlreadyExists

from .credentials import check_email, check_password, hash_password, new_uid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityRecord:
    uid: str
    email: str
    password_hash: str
    display_name: str


class InMemoryIdentityStore:
    """
    Implements IdentityStore protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Email uniqueness is checked and recorded without yielding, so it is
    atomic with respect to other coroutines.
    """

    def __init__(self, min_password_length: int = 6, bcrypt_cost: int = 4) -> None:
        self._min_password_length = min_password_length
        self._bcrypt_cost = bcrypt_cost
        self._records: dict[str, IdentityRecord] = {}
        self._uid_by_email: dict[str, str] = {}

    async def find_by_email(self, email: str) -> str | None:
        await asyncio.sleep(0)
        return self._uid_by_email.get(email)

    async def create_identity(self, email: str, password: str, display_name: str) -> str:
        await asyncio.sleep(0)
        check_email(email)
        check_password(password, self._min_password_length)
        password_hash = await asyncio.to_thread(hash_password, password, self._bcrypt_cost)

        if email in self._uid_by_email:
            raise EmailAlreadyExists(email)
        uid = new_uid()
        self._records[uid] = IdentityRecord(uid, email, password_hash, display_name)
        self._uid_by_email[email] = uid
        logger.debug("Identity created: %s", uid)
        return uid

    async def delete_identity(self, uid: str) -> None:
        await asyncio.sleep(0)
        record = self._records.pop(uid, None)
        if record is not None:
            del self._uid_by_email[record.email]
            logger.debug("Identity deleted: %s", uid)

    async def check_health(self) -> None:
        return None

    def get(self, uid: str) -> IdentityRecord | None:
        return self._records.get(uid)

    def __len__(self) -> int:
        return len(self._records)
