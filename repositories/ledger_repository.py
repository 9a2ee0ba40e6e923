"""
Stock-movement ledger repository (persistence).

Append-only: this module exposes no update or delete. A wrong entry is
corrected by appending an adjustment, never by editing history.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping
from uuid import UUID

from supabase import Client

from domain.inventory import LedgerEntry, TransactionType
from repositories.errors import execute_query
from repositories.timestamps import parse_optional_utc_datetime, to_iso_utc

# Keep this aligned with your database schema.
_LEDGER_TABLE: str = "parts_transactions"


def _optional_uuid(value: Any) -> UUID | None:
    return UUID(str(value)) if value else None


def _row_to_entry(row: Mapping[str, Any]) -> LedgerEntry:
    """Convert a `parts_transactions` row into a LedgerEntry."""

    return LedgerEntry(
        entry_id=UUID(str(row["id"])),
        part_id=UUID(str(row["part_id"])),
        transaction_type=TransactionType(str(row["transaction_type"])),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row.get("unit_price") or "0")),
        stock_before=int(row["stock_before"]),
        stock_after=int(row["stock_after"]),
        performed_by=UUID(str(row["performed_by"])),
        job_card_id=_optional_uuid(row.get("job_card_id")),
        allocation_id=_optional_uuid(row.get("job_card_part_id")),
        notes=row.get("notes"),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
    )


class SupabaseLedgerStore:
    """LedgerStore over the `parts_transactions` table."""

    def __init__(self, client: Client):
        self._client = client

    def append(self, entry: LedgerEntry) -> UUID:
        payload: dict[str, Any] = {
            "id": str(entry.entry_id),
            "part_id": str(entry.part_id),
            "transaction_type": entry.transaction_type.value,
            "quantity": entry.quantity,
            "unit_price": str(entry.unit_price),
            "total_price": str(entry.total_price),
            "stock_before": entry.stock_before,
            "stock_after": entry.stock_after,
            "performed_by": str(entry.performed_by),
            "job_card_id": str(entry.job_card_id) if entry.job_card_id else None,
            "job_card_part_id": str(entry.allocation_id) if entry.allocation_id else None,
            "notes": entry.notes,
        }
        if entry.created_at is not None:
            payload["created_at"] = to_iso_utc(entry.created_at, name="created_at")

        execute_query(self._client.table(_LEDGER_TABLE).insert(payload), action="append ledger entry")
        return entry.entry_id

    def list_by_part(self, part_id: UUID) -> List[LedgerEntry]:
        """All entries for a part in creation order (for audit replay)."""

        rows = execute_query(
            self._client.table(_LEDGER_TABLE)
            .select("*")
            .eq("part_id", str(part_id))
            .order("created_at", desc=False),
            action="list ledger entries",
        )
        return [_row_to_entry(row) for row in rows]


__all__ = ["SupabaseLedgerStore"]
