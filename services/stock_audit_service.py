"""
Stock ledger audit.

Replays a part's ledger from the stock level its first entry recorded and
compares the result with the part's current total stock. A mismatch means a
stock movement happened without a ledger entry (or the other way round) and
needs an operator to look at the entries flagged by the allocation
coordinator's CRITICAL logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from domain.inventory import replay_stock
from repositories.stores import CatalogStore, LedgerStore
from services.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StockAudit:
    part_id: UUID
    part_number: str
    actual_stock: int
    entry_count: int
    # None when the part has no ledger entries yet.
    ledger_stock: Optional[int]

    @property
    def consistent(self) -> bool:
        return self.ledger_stock is None or self.ledger_stock == self.actual_stock

    @property
    def drift(self) -> int:
        if self.ledger_stock is None:
            return 0
        return self.actual_stock - self.ledger_stock


def audit_part_stock(catalog: CatalogStore, ledger: LedgerStore, part_id: UUID) -> StockAudit:
    """
    Check that a part's ledger replays to its current stock.

    Raises:
        NotFoundError: the part does not exist
        StoreError: the part or its ledger could not be read
    """

    part = catalog.get_part(part_id)
    if part is None:
        raise NotFoundError("part", str(part_id))

    entries = ledger.list_by_part(part_id)
    ledger_stock = replay_stock(entries[0].stock_before, entries) if entries else None

    audit = StockAudit(
        part_id=part.part_id,
        part_number=part.part_number,
        actual_stock=part.total_stock,
        entry_count=len(entries),
        ledger_stock=ledger_stock,
    )
    if not audit.consistent:
        logger.warning(
            "Stock ledger does not match part stock",
            extra={
                "part_id": str(part.part_id),
                "actual_stock": audit.actual_stock,
                "ledger_stock": audit.ledger_stock,
            },
        )
    return audit


__all__ = ["StockAudit", "audit_part_stock"]
