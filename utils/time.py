"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return a naive UTC datetime for storage in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_or_none(value: datetime | None) -> str | None:
    if not value:
        return None
    return value.isoformat()
