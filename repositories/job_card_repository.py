"""
Job card and job card part (allocation line) repositories (persistence).

Both tables are soft-deleted: rows with `deleted_at` set are never returned.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from supabase import Client

from domain.job_card import DEFAULT_PART_CATEGORY, Allocation, AllocationStatus, JobCard, PartSource
from repositories.errors import execute_query
from repositories.timestamps import parse_optional_utc_datetime, to_iso_utc

# Keep these aligned with your database schema.
_JOB_CARDS_TABLE: str = "job_cards"
_JOB_CARD_PARTS_TABLE: str = "job_card_parts"


def _row_to_job_card(row: Mapping[str, Any]) -> JobCard:
    return JobCard(
        job_card_id=UUID(str(row["id"])),
        garage_id=str(row["garage_id"]),
        job_card_number=str(row.get("job_card_number") or ""),
        estimated_parts_cost=Decimal(str(row.get("estimated_parts_cost") or "0")),
    )


def _row_to_allocation(row: Mapping[str, Any]) -> Allocation:
    part_id = row.get("part_id")
    requested_by = row.get("requested_by")
    return Allocation(
        allocation_id=UUID(str(row["id"])),
        job_card_id=UUID(str(row["job_card_id"])),
        part_id=UUID(str(part_id)) if part_id else None,
        part_name=str(row.get("part_name") or ""),
        quantity=int(row["quantity_requested"]),
        unit_price=Decimal(str(row.get("estimated_unit_price") or "0")),
        source=PartSource(str(row.get("source") or PartSource.INVENTORY.value)),
        status=AllocationStatus(str(row.get("status") or AllocationStatus.REQUESTED.value)),
        part_number=row.get("part_number"),
        category=row.get("category") or DEFAULT_PART_CATEGORY,
        manufacturer=row.get("manufacturer"),
        requested_by=UUID(str(requested_by)) if requested_by else None,
        notes=row.get("notes"),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
    )


def _allocation_to_row(allocation: Allocation) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": str(allocation.allocation_id),
        "job_card_id": str(allocation.job_card_id),
        "part_id": str(allocation.part_id) if allocation.part_id else None,
        "part_name": allocation.part_name,
        "part_number": allocation.part_number,
        "category": allocation.category,
        "manufacturer": allocation.manufacturer,
        "quantity_requested": allocation.quantity,
        "estimated_unit_price": str(allocation.unit_price),
        "status": allocation.status.value,
        "source": allocation.source.value,
        "requested_by": str(allocation.requested_by) if allocation.requested_by else None,
        "notes": allocation.notes,
    }
    if allocation.created_at is not None:
        created = to_iso_utc(allocation.created_at, name="created_at")
        row["created_at"] = created
        row["requested_at"] = created
    return row


class SupabaseJobCardStore:
    """JobCardStore over the `job_cards` table."""

    def __init__(self, client: Client):
        self._client = client

    def get_job_card(self, job_card_id: UUID) -> Optional[JobCard]:
        rows = execute_query(
            self._client.table(_JOB_CARDS_TABLE)
            .select("id, garage_id, job_card_number, estimated_parts_cost")
            .eq("id", str(job_card_id))
            .is_("deleted_at", "null")
            .limit(1),
            action="fetch job card",
        )
        return _row_to_job_card(rows[0]) if rows else None

    def update_estimated_parts_cost(self, job_card_id: UUID, amount: Decimal, *, updated_at: datetime) -> None:
        execute_query(
            self._client.table(_JOB_CARDS_TABLE)
            .update(
                {
                    "estimated_parts_cost": str(amount),
                    "updated_at": to_iso_utc(updated_at, name="updated_at"),
                }
            )
            .eq("id", str(job_card_id)),
            action="update job card parts cost",
        )


class SupabaseAllocationLineStore:
    """AllocationLineStore over the `job_card_parts` table."""

    def __init__(self, client: Client):
        self._client = client

    def insert_batch(self, allocations: Sequence[Allocation]) -> List[UUID]:
        """Insert all line items in one request; PostgREST applies a multi-row insert atomically."""

        if not allocations:
            return []
        payload = [_allocation_to_row(allocation) for allocation in allocations]
        execute_query(self._client.table(_JOB_CARD_PARTS_TABLE).insert(payload), action="insert job card parts")
        return [allocation.allocation_id for allocation in allocations]

    def list_by_job_card(self, job_card_id: UUID) -> List[Allocation]:
        rows = execute_query(
            self._client.table(_JOB_CARD_PARTS_TABLE)
            .select("*")
            .eq("job_card_id", str(job_card_id))
            .is_("deleted_at", "null")
            .order("created_at", desc=False),
            action="list job card parts",
        )
        return [_row_to_allocation(row) for row in rows]


__all__ = ["SupabaseAllocationLineStore", "SupabaseJobCardStore"]
