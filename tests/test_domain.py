"""
Tests for the domain entities in `domain/`.

Covers contract rules:
- Timestamps are UTC.
- Ledger entries keep stock_before/stock_after consistent with their type.
- A reversal exactly cancels the entry it reverses.
- Part stock never goes below zero and its status follows the threshold.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.identity import Credential, IdentitySummary, StaffRole
from domain.inventory import LedgerEntry, StockStatus, TransactionType, replay_stock
from domain.job_card import Allocation, PartSource

from fakes import make_owner, make_part

PART_ID = UUID("00000000-0000-0000-0000-0000000000a1")
ACTOR_ID = UUID("00000000-0000-0000-0000-000000000002")


def _entry(kind: TransactionType, quantity: int, before: int, after: int) -> LedgerEntry:
    return LedgerEntry(
        entry_id=UUID(int=before * 1000 + after),
        part_id=PART_ID,
        transaction_type=kind,
        quantity=quantity,
        unit_price=Decimal("4.00"),
        stock_before=before,
        stock_after=after,
        performed_by=ACTOR_ID,
    )


def test_ledger_entry_checks_movement_against_type() -> None:
    _entry(TransactionType.ALLOCATION, 3, 10, 7)
    _entry(TransactionType.RETURN, 3, 7, 10)
    _entry(TransactionType.ADJUSTMENT, 2, 10, 8)

    with pytest.raises(ValueError):
        _entry(TransactionType.ALLOCATION, 3, 10, 8)
    with pytest.raises(ValueError):
        _entry(TransactionType.RETURN, 3, 10, 7)
    with pytest.raises(ValueError):
        _entry(TransactionType.ALLOCATION, -1, 10, 11)


def test_ledger_entry_created_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        LedgerEntry(
            entry_id=UUID(int=1),
            part_id=PART_ID,
            transaction_type=TransactionType.ALLOCATION,
            quantity=1,
            unit_price=Decimal("1"),
            stock_before=1,
            stock_after=0,
            performed_by=ACTOR_ID,
            created_at=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=2))),
        )


def test_reversal_cancels_entry() -> None:
    entry = _entry(TransactionType.ALLOCATION, 4, 10, 6)

    reversal = entry.reversal(entry_id=UUID(int=99), notes="undo")

    assert reversal.transaction_type is TransactionType.ADJUSTMENT
    assert replay_stock(10, [entry, reversal]) == 10
    assert reversal.allocation_id == entry.allocation_id


def test_replay_stock_folds_movements() -> None:
    entries = [
        _entry(TransactionType.ALLOCATION, 4, 10, 6),
        _entry(TransactionType.RETURN, 1, 6, 7),
        _entry(TransactionType.ADJUSTMENT, 2, 7, 5),
    ]

    assert replay_stock(10, entries) == 5


def test_part_stock_is_floored_and_status_follows_threshold() -> None:
    part = make_part(on_hand=6, warehouse=2)

    assert part.total_stock == 8
    assert part.stock_status is StockStatus.IN_STOCK
    assert part.with_on_hand(5).stock_status is StockStatus.LOW_STOCK
    assert part.with_on_hand(-3).on_hand_stock == 0
    assert part.with_on_hand(0).stock_status is StockStatus.OUT_OF_STOCK


def test_part_is_immutable() -> None:
    part = make_part()

    with pytest.raises(FrozenInstanceError):
        part.on_hand_stock = 0  # type: ignore[misc]


def test_allocation_line_total_and_inventory_flag() -> None:
    allocation = Allocation(
        allocation_id=UUID(int=1),
        job_card_id=UUID(int=2),
        part_id=PART_ID,
        part_name="Brake pad set",
        quantity=3,
        unit_price=Decimal("12.50"),
        source=PartSource.INVENTORY,
    )

    assert allocation.line_total == Decimal("37.50")
    assert allocation.draws_from_inventory
    assert allocation.category == "general"

    with pytest.raises(ValueError):
        Allocation(
            allocation_id=UUID(int=1),
            job_card_id=UUID(int=2),
            part_id=None,
            part_name="Oil",
            quantity=0,
            unit_price=Decimal("1"),
            source=PartSource.CUSTOMER,
        )


def test_new_credential_has_no_password_and_summary_hides_it() -> None:
    owner = make_owner()

    credential = Credential.for_identity(owner)
    summary = IdentitySummary.from_identity(owner)

    assert credential.password_hash is None
    assert not credential.has_password
    assert credential.role is StaffRole.OWNER
    assert not hasattr(summary, "password_hash")
    assert StaffRole.values() == (
        "owner",
        "admin",
        "service_advisor",
        "mechanic",
        "inventory_manager",
        "receptionist",
    )
