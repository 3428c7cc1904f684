from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch_ms(dt: Optional[datetime]) -> Optional[int]:
    """
    Serialize a datetime as integer epoch milliseconds.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_epoch_ms(value) -> Optional[datetime]:
    """
    Parse epoch milliseconds into a UTC-naive datetime.

    - None -> None
    - bool / non-numeric -> ValueError
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("timestamp must be epoch milliseconds")
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
