"""
Domain: Parts, stock counters and the stock-movement ledger.

Invariants implemented here:
- Part stock counters (on-hand, warehouse) are never negative.
- The stock-status tag is derived from on-hand stock and the low-stock threshold:
  0 -> out-of-stock, <= threshold -> low-stock, otherwise in-stock.
- LedgerEntry is immutable and internally consistent:
  - allocation: stock_after = stock_before - quantity
  - return:     stock_after = stock_before + quantity
  - adjustment: quantity = |stock_after - stock_before|, in either direction
- Replaying a part's ledger entries in creation order over its initial stock
  reproduces the part's current total stock exactly.

This module contains only pure domain entities/value objects: no I/O, no database,
no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from .time import require_optional_utc_timestamp

DEFAULT_LOW_STOCK_THRESHOLD: int = 5


class StockStatus(str, Enum):
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"

    @staticmethod
    def for_on_hand(on_hand_stock: int, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> "StockStatus":
        if on_hand_stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if on_hand_stock <= low_stock_threshold:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK


class TransactionType(str, Enum):
    ALLOCATION = "allocation"
    RETURN = "return"
    ADJUSTMENT = "adjustment"


@dataclass(frozen=True, slots=True)
class Part:
    """
    Catalog record with its stock counters.

    Parts are owned by inventory-management flows; coordinators only read them
    and decrement on-hand stock.
    """

    part_id: UUID
    garage_id: str
    part_number: str
    part_name: str
    on_hand_stock: int
    warehouse_stock: int
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.on_hand_stock < 0:
            raise ValueError("on_hand_stock must be >= 0")
        if self.warehouse_stock < 0:
            raise ValueError("warehouse_stock must be >= 0")
        require_optional_utc_timestamp("updated_at", self.updated_at)

    @property
    def total_stock(self) -> int:
        return self.on_hand_stock + self.warehouse_stock

    @property
    def stock_status(self) -> StockStatus:
        return StockStatus.for_on_hand(self.on_hand_stock, self.low_stock_threshold)

    def with_on_hand(self, on_hand_stock: int, *, updated_at: Optional[datetime] = None) -> "Part":
        """Return a copy with a new on-hand counter (floored at zero)."""

        return Part(
            part_id=self.part_id,
            garage_id=self.garage_id,
            part_number=self.part_number,
            part_name=self.part_name,
            on_hand_stock=max(on_hand_stock, 0),
            warehouse_stock=self.warehouse_stock,
            category=self.category,
            manufacturer=self.manufacturer,
            low_stock_threshold=self.low_stock_threshold,
            updated_at=updated_at if updated_at is not None else self.updated_at,
        )


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """Immutable record of a single stock movement for a part."""

    entry_id: UUID
    part_id: UUID
    transaction_type: TransactionType
    quantity: int
    unit_price: Decimal
    stock_before: int
    stock_after: int
    performed_by: UUID
    job_card_id: Optional[UUID] = None
    allocation_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.transaction_type is TransactionType.ALLOCATION and self.stock_after != self.stock_before - self.quantity:
            raise ValueError("allocation entries require stock_after == stock_before - quantity")
        if self.transaction_type is TransactionType.RETURN and self.stock_after != self.stock_before + self.quantity:
            raise ValueError("return entries require stock_after == stock_before + quantity")
        if self.transaction_type is TransactionType.ADJUSTMENT and abs(self.stock_after - self.stock_before) != self.quantity:
            raise ValueError("adjustment entries require quantity == |stock_after - stock_before|")
        require_optional_utc_timestamp("created_at", self.created_at)

    @property
    def movement(self) -> int:
        """Signed change this entry applies to the part's total stock."""

        return self.stock_after - self.stock_before

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    def reversal(self, *, entry_id: UUID, notes: str, created_at: Optional[datetime] = None) -> "LedgerEntry":
        """
        Build the adjustment entry that cancels this one.

        The ledger is append-only, so a movement that was recorded but never
        applied to the stock counter is neutralised by appending its mirror image.
        """

        return LedgerEntry(
            entry_id=entry_id,
            part_id=self.part_id,
            transaction_type=TransactionType.ADJUSTMENT,
            quantity=self.quantity,
            unit_price=self.unit_price,
            stock_before=self.stock_after,
            stock_after=self.stock_before,
            performed_by=self.performed_by,
            job_card_id=self.job_card_id,
            allocation_id=self.allocation_id,
            notes=notes,
            created_at=created_at,
        )


def replay_stock(initial_stock: int, entries: Iterable[LedgerEntry]) -> int:
    """
    Fold ledger entries (in creation order) over an initial stock value.

    Used for audit/reconciliation: the result must equal the part's current
    total stock.
    """

    stock = initial_stock
    for entry in entries:
        stock += entry.movement
    return stock
