"""
Parts catalog repository (persistence).

Stock counters are only ever changed with a conditional update that names the
value the caller observed (compare-and-swap). If another request changed the
counter in between, the update matches no rows and StockConflictError is raised
so the caller can re-read and retry.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client

from domain.inventory import DEFAULT_LOW_STOCK_THRESHOLD, Part, StockStatus
from domain.time import utc_now
from repositories.errors import StockConflictError, execute_query
from repositories.timestamps import parse_optional_utc_datetime

# Keep this aligned with your database schema.
_PARTS_TABLE: str = "parts"


def _row_to_part(row: Mapping[str, Any]) -> Part:
    """Convert a `parts` row into a Part."""

    threshold = row.get("low_stock_threshold")
    return Part(
        part_id=UUID(str(row["id"])),
        garage_id=str(row["garage_id"]),
        part_number=str(row["part_number"]),
        part_name=str(row.get("part_name") or ""),
        on_hand_stock=int(row.get("on_hand_stock") or 0),
        warehouse_stock=int(row.get("warehouse_stock") or 0),
        category=row.get("category"),
        # The catalog calls it `make`; job card lines call it manufacturer.
        manufacturer=row.get("manufacturer") or row.get("make"),
        low_stock_threshold=int(threshold) if threshold is not None else DEFAULT_LOW_STOCK_THRESHOLD,
        updated_at=parse_optional_utc_datetime(row.get("updated_at")),
    )


class SupabaseCatalogStore:
    """CatalogStore over the `parts` table."""

    def __init__(self, client: Client):
        self._client = client

    def get_part(self, part_id: UUID) -> Optional[Part]:
        rows = execute_query(
            self._client.table(_PARTS_TABLE).select("*").eq("id", str(part_id)).limit(1),
            action="fetch part",
        )
        return _row_to_part(rows[0]) if rows else None

    def decrement_stock(self, observed: Part, amount: int) -> int:
        if amount < 0:
            raise ValueError("amount must be >= 0")

        new_on_hand = max(observed.on_hand_stock - amount, 0)
        payload: dict[str, Any] = {
            "on_hand_stock": new_on_hand,
            "stock_status": StockStatus.for_on_hand(new_on_hand, observed.low_stock_threshold).value,
            "updated_at": utc_now().isoformat(),
        }

        # Only update if the counter still holds the value the caller read.
        rows = execute_query(
            self._client.table(_PARTS_TABLE)
            .update(payload)
            .eq("id", str(observed.part_id))
            .eq("on_hand_stock", observed.on_hand_stock),
            action="decrement part stock",
        )
        if not rows:
            raise StockConflictError(
                f"Stock for part {observed.part_id} changed since it was read "
                f"(expected on_hand_stock={observed.on_hand_stock})"
            )
        return int(rows[0].get("on_hand_stock", new_on_hand))


__all__ = ["SupabaseCatalogStore"]
