"""
Field usage counter repository (persistence).

Increments go through the `increment_field_usage` PostgreSQL function
(see sql/increment_field_usage.sql), which does an
INSERT ... ON CONFLICT DO UPDATE SET usage_count = usage_count + 1 in a single
statement. Never read the counter and write it back from here: two concurrent
requests would both read N and both write N + 1.
"""

from __future__ import annotations

from typing import Any, List, Mapping

from supabase import Client

from domain.usage import UsageCounter
from repositories.errors import execute_query
from repositories.timestamps import parse_optional_utc_datetime

# Keep these aligned with your database schema.
_USAGE_TABLE: str = "inventory_field_usage"
_INCREMENT_FUNCTION: str = "increment_field_usage"


def _row_to_counter(row: Mapping[str, Any]) -> UsageCounter:
    return UsageCounter(
        garage_id=str(row["garage_id"]),
        field_name=str(row["field_name"]),
        field_value=str(row["field_value"]),
        usage_count=int(row.get("usage_count") or 0),
        last_used_at=parse_optional_utc_datetime(row.get("last_used_at")),
    )


class SupabaseUsageCounterStore:
    """UsageCounterStore over `inventory_field_usage` + the atomic increment function."""

    def __init__(self, client: Client):
        self._client = client

    def upsert(self, garage_id: str, field_name: str, field_value: str) -> None:
        execute_query(
            self._client.rpc(
                _INCREMENT_FUNCTION,
                {
                    "p_garage_id": garage_id,
                    "p_field_name": field_name,
                    "p_field_value": field_value,
                },
            ),
            action="increment field usage",
        )

    def list_usage(self, garage_id: str, field_name: str) -> List[UsageCounter]:
        rows = execute_query(
            self._client.table(_USAGE_TABLE)
            .select("garage_id, field_name, field_value, usage_count, last_used_at")
            .eq("garage_id", garage_id)
            .eq("field_name", field_name)
            .order("usage_count", desc=True)
            .order("last_used_at", desc=True),
            action="list field usage",
        )
        return [_row_to_counter(row) for row in rows]


__all__ = ["SupabaseUsageCounterStore"]
