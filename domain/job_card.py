"""
Domain: Job cards and their part allocations (line items).

An Allocation is created once per submitted line. It may reference a catalog
Part, or no part at all when the customer supplies it. Category and
manufacturer are copied from the Part at allocation time so the job card keeps
displaying what was allocated even if the catalog changes later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp

DEFAULT_PART_CATEGORY: str = "general"


class AllocationStatus(str, Enum):
    REQUESTED = "requested"
    USED = "used"
    RETURNED = "returned"


class PartSource(str, Enum):
    INVENTORY = "inventory"
    CUSTOMER = "customer"
    EXTERNAL = "external"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(source.value for source in cls)


@dataclass(frozen=True, slots=True)
class JobCard:
    job_card_id: UUID
    garage_id: str
    job_card_number: str
    estimated_parts_cost: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class Allocation:
    """Part line item on a job card (`job_card_parts`)."""

    allocation_id: UUID
    job_card_id: UUID
    part_id: Optional[UUID]
    part_name: str
    quantity: int
    unit_price: Decimal
    source: PartSource
    status: AllocationStatus = AllocationStatus.REQUESTED
    part_number: Optional[str] = None
    category: str = DEFAULT_PART_CATEGORY
    manufacturer: Optional[str] = None
    requested_by: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0")
        require_optional_utc_timestamp("created_at", self.created_at)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def draws_from_inventory(self) -> bool:
        """True when this line must move stock (inventory-sourced and tied to a real part)."""

        return self.source is PartSource.INVENTORY and self.part_id is not None
