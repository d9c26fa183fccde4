"""
Per-address registration quota.

Counters live in the document store and are only touched inside the
registration transaction. The increment is staged with the store's
atomic Increment primitive, never as read-modify-write.
"""

import ipaddress
import logging
from dataclasses import dataclass

from .exceptions import QuotaExceeded
from .ports import DocumentRef, DocumentTransaction, Increment

logger = logging.getLogger(__name__)

QUOTA_COLLECTION = "ipRegistrationCounts"


def normalize_address(raw: str | None) -> str | None:
    """
    Canonical form of a source address used as the counter key.

    IPv4-mapped IPv6 addresses collapse to their IPv4 form so the same
    client is counted once whichever stack it arrived on.
    """
    if raw is None:
        return None
    candidate = raw.strip()
    if not candidate:
        return None
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return candidate.lower()
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return str(address.ipv4_mapped)
    return address.compressed


@dataclass(frozen=True)
class QuotaTracker:
    """Fixed-ceiling registration counter keyed by normalized address."""

    ceiling: int = 3
    collection: str = QUOTA_COLLECTION

    def ref(self, address: str) -> DocumentRef:
        return DocumentRef(self.collection, address)

    async def check_and_reserve(self, txn: DocumentTransaction, address: str) -> None:
        """
        Read the counter and stage a +1 if below the ceiling.

        Raises:
            QuotaExceeded: Counter already at the ceiling, nothing staged
        """
        ref = self.ref(address)
        doc = await txn.get(ref)
        count = int(doc.get("count", 0)) if doc else 0
        if count >= self.ceiling:
            logger.info("Quota reached for %s (%d/%d)", address, count, self.ceiling)
            raise QuotaExceeded(address)
        txn.set(ref, {"count": Increment(1)}, merge=True)
