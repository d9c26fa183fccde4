"""Resolution of write sentinels shared by document store adapters."""

import copy
from datetime import datetime
from typing import Any

from src.domain.ports import SERVER_TIMESTAMP, Increment


def split_increments(data: dict[str, Any], timestamp: datetime) -> tuple[dict[str, Any], dict[str, int]]:
    """
    Separate Increment sentinels from plain values.

    SERVER_TIMESTAMP values are replaced by timestamp in ISO-8601 form.
    """
    values: dict[str, Any] = {}
    increments: dict[str, int] = {}
    for key, value in data.items():
        if isinstance(value, Increment):
            increments[key] = value.amount
        elif value is SERVER_TIMESTAMP:
            values[key] = timestamp.isoformat()
        else:
            values[key] = copy.deepcopy(value)
    return values, increments


def apply_write(
    current: dict[str, Any] | None, data: dict[str, Any], merge: bool, timestamp: datetime
) -> dict[str, Any]:
    """New document content after a staged set() is committed over current."""
    values, increments = split_increments(data, timestamp)
    base = dict(current) if merge and current is not None else {}
    base.update(values)
    for key, amount in increments.items():
        base[key] = int(base.get(key, 0)) + amount
    return base
