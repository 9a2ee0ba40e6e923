"""
UTC helpers shared by the domain entities.

Every timestamp this project stores is timezone-aware with a zero offset.
Entities check that in __post_init__; services take a `clock` callable that
defaults to utc_now() so tests can pin time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def require_utc_timestamp(name: str, value: datetime) -> None:
    """Raise ValueError unless `value` is aware and at UTC offset 0."""

    offset = value.utcoffset()
    if offset is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if offset:
        raise ValueError(f"{name} must be a UTC timestamp (offset 0), got offset {offset}")


def require_optional_utc_timestamp(name: str, value: Optional[datetime]) -> None:
    if value is not None:
        require_utc_timestamp(name, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
