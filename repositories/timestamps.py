"""
Conversion between domain datetimes and the ISO-8601 strings Supabase stores
in `timestamptz` columns.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from domain.time import require_utc_timestamp


def to_iso_utc(dt: datetime, *, name: str) -> str:
    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc_datetime(value: Any) -> datetime:
    """
    Read a timestamp column value as an aware UTC datetime.

    PostgREST sends strings, sometimes ending in 'Z'. Naive values are taken
    to be UTC.
    """

    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_optional_utc_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


__all__ = ["parse_optional_utc_datetime", "parse_utc_datetime", "to_iso_utc"]
