"""
Domain: Per-garage usage counters for dropdown field values.

Exactly one counter exists per (garage_id, field_name, field_value); the count
only ever goes up. Counters are used to rank options so the values a garage
picks most often are offered first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .time import require_optional_utc_timestamp


@dataclass(frozen=True, slots=True)
class UsageCounter:
    garage_id: str
    field_name: str
    field_value: str
    usage_count: int
    last_used_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.usage_count < 0:
            raise ValueError("usage_count must be >= 0")
        require_optional_utc_timestamp("last_used_at", self.last_used_at)


@dataclass(frozen=True, slots=True)
class FieldOption:
    """A dropdown option annotated with how often the garage has used it."""

    value: str
    label: str
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
