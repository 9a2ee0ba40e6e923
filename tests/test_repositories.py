"""
Tests for the Supabase-backed stores in `repositories/`.

The Supabase client is replaced by a mock whose query builder returns itself
for every chained call, so only the final `execute()` result matters.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from typing import Any, List
from unittest.mock import MagicMock
from uuid import UUID

import httpx
import pytest
from postgrest.exceptions import APIError

from domain.inventory import LedgerEntry, TransactionType
from domain.job_card import Allocation, PartSource
from repositories.errors import (
    DuplicateRecordError,
    StockConflictError,
    StoreError,
    StoreOutcome,
    execute_query,
)
from repositories.identity_repository import SupabaseCredentialStore, SupabaseIdentityStore
from repositories.job_card_repository import SupabaseAllocationLineStore, SupabaseJobCardStore
from repositories.ledger_repository import SupabaseLedgerStore
from repositories.part_repository import SupabaseCatalogStore
from repositories.usage_repository import SupabaseUsageCounterStore

from fakes import make_part

PART_ID = UUID("00000000-0000-0000-0000-0000000000a1")


def _mock_client(*results: List[dict[str, Any]]) -> MagicMock:
    query = MagicMock()
    for method in ("select", "eq", "is_", "ilike", "limit", "order", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    query.execute.side_effect = [SimpleNamespace(data=rows) for rows in results]
    client = MagicMock()
    client.table.return_value = query
    client.rpc.return_value = query
    client.query = query
    return client


def _failing_query(error: Exception) -> MagicMock:
    query = MagicMock()
    query.execute.side_effect = error
    return query


def test_execute_query_maps_unique_violation() -> None:
    error = APIError({"message": "duplicate key value violates unique constraint \"users_email_key\"", "code": "23505"})

    with pytest.raises(DuplicateRecordError) as excinfo:
        execute_query(_failing_query(error), action="insert user")

    assert excinfo.value.constraint == "users_email_key"
    assert excinfo.value.outcome is StoreOutcome.CONFIRMED


@pytest.mark.parametrize(
    "error, outcome",
    [
        (httpx.ConnectError("refused"), StoreOutcome.CONFIRMED),
        (httpx.ConnectTimeout("connect timeout"), StoreOutcome.CONFIRMED),
        (httpx.ReadTimeout("read timeout"), StoreOutcome.UNKNOWN),
        (httpx.RemoteProtocolError("connection dropped"), StoreOutcome.UNKNOWN),
        (APIError({"message": "permission denied", "code": "42501"}), StoreOutcome.CONFIRMED),
    ],
)
def test_execute_query_classifies_outcomes(error: Exception, outcome: StoreOutcome) -> None:
    with pytest.raises(StoreError) as excinfo:
        execute_query(_failing_query(error), action="write")

    assert excinfo.value.outcome is outcome
    assert not isinstance(excinfo.value, DuplicateRecordError)


def test_execute_query_wraps_single_row_responses() -> None:
    query = MagicMock()
    query.execute.return_value = SimpleNamespace(data={"id": 1})

    assert execute_query(query, action="fetch") == [{"id": 1}]


def test_decrement_stock_conditions_on_observed_value() -> None:
    client = _mock_client([{"on_hand_stock": 3}])
    store = SupabaseCatalogStore(client)

    assert store.decrement_stock(make_part(on_hand=5), 2) == 3

    client.query.update.assert_called_once()
    payload = client.query.update.call_args.args[0]
    assert payload["on_hand_stock"] == 3
    assert payload["stock_status"] == "low-stock"
    client.query.eq.assert_any_call("on_hand_stock", 5)


def test_decrement_stock_with_no_matching_row_is_a_conflict() -> None:
    store = SupabaseCatalogStore(_mock_client([]))

    with pytest.raises(StockConflictError):
        store.decrement_stock(make_part(on_hand=5), 2)


def test_decrement_stock_floors_at_zero() -> None:
    client = _mock_client([{"on_hand_stock": 0}])

    SupabaseCatalogStore(client).decrement_stock(make_part(on_hand=2), 5)

    assert client.query.update.call_args.args[0]["on_hand_stock"] == 0


def test_get_part_maps_row() -> None:
    row = {
        "id": str(PART_ID),
        "garage_id": "GAR-001",
        "part_number": "BP-100",
        "part_name": "Brake pad set",
        "on_hand_stock": 7,
        "warehouse_stock": 3,
        "category": "Brakes",
        "make": "Acme",
        "low_stock_threshold": None,
        "updated_at": "2025-01-01T12:00:00+00:00",
    }

    part = SupabaseCatalogStore(_mock_client([row])).get_part(PART_ID)

    assert part is not None
    assert part.total_stock == 10
    assert part.manufacturer == "Acme"
    assert part.low_stock_threshold == 5


def test_find_by_handle_or_email_checks_handle_first() -> None:
    client = _mock_client([], [])
    store = SupabaseIdentityStore(client)

    assert store.find_by_handle_or_email("jose.alvaro@riversidegarage", "j@x.com") is None

    client.query.eq.assert_any_call("login_id", "jose.alvaro@riversidegarage")
    client.query.ilike.assert_called_once_with("email", "j@x.com")


def test_ledger_append_writes_totals() -> None:
    client = _mock_client([{}])
    entry = LedgerEntry(
        entry_id=UUID(int=1),
        part_id=PART_ID,
        transaction_type=TransactionType.ALLOCATION,
        quantity=3,
        unit_price=Decimal("4.50"),
        stock_before=10,
        stock_after=7,
        performed_by=UUID(int=2),
        allocation_id=UUID(int=3),
    )

    SupabaseLedgerStore(client).append(entry)

    payload = client.query.insert.call_args.args[0]
    assert payload["total_price"] == "13.50"
    assert payload["job_card_part_id"] == str(UUID(int=3))
    assert payload["job_card_id"] is None


def test_insert_batch_sends_one_request() -> None:
    client = _mock_client([{}])
    allocations = [
        Allocation(
            allocation_id=UUID(int=index),
            job_card_id=UUID(int=100),
            part_id=None,
            part_name=f"Line {index}",
            quantity=1,
            unit_price=Decimal("5"),
            source=PartSource.EXTERNAL,
        )
        for index in (1, 2)
    ]

    assert SupabaseAllocationLineStore(client).insert_batch(allocations) == [UUID(int=1), UUID(int=2)]

    client.query.insert.assert_called_once()
    rows = client.query.insert.call_args.args[0]
    assert [row["part_name"] for row in rows] == ["Line 1", "Line 2"]
    assert rows[0]["quantity_requested"] == 1


def test_insert_batch_skips_empty_batches() -> None:
    client = _mock_client()

    assert SupabaseAllocationLineStore(client).insert_batch([]) == []
    client.query.insert.assert_not_called()


def test_usage_upsert_uses_atomic_function() -> None:
    client = _mock_client([{}])

    SupabaseUsageCounterStore(client).upsert("GAR-001", "category", "Brakes")

    client.rpc.assert_called_once_with(
        "increment_field_usage",
        {"p_garage_id": "GAR-001", "p_field_name": "category", "p_field_value": "Brakes"},
    )
    client.table.assert_not_called()


def test_unique_violation_without_constraint_name() -> None:
    error = APIError({"message": "duplicate key", "code": "23505", "details": None})

    with pytest.raises(DuplicateRecordError) as excinfo:
        execute_query(_failing_query(error), action="insert user")

    assert excinfo.value.constraint is None


def test_email_lookup_escapes_wildcards() -> None:
    client = _mock_client([], [])

    SupabaseIdentityStore(client).find_by_handle_or_email("ana.ruiz@garage", "ana_ruiz%1@x.com")

    client.query.ilike.assert_called_once_with("email", "ana\\_ruiz\\%1@x.com")


def test_find_credential_by_handle_maps_row() -> None:
    client = _mock_client(
        [
            {
                "user_uid": str(UUID(int=5)),
                "login_id": "jose.alvaro@riversidegarage",
                "user_role": "mechanic",
                "garage_id": "GAR-001",
                "garage_name": "Riverside Garage",
                "first_name": "José",
                "last_name": "Álvaro",
                "password_hash": None,
            }
        ]
    )

    credential = SupabaseCredentialStore(client).find_by_handle("jose.alvaro@riversidegarage")

    assert credential is not None
    assert credential.identity_id == UUID(int=5)
    assert not credential.has_password
    client.table.assert_called_with("garage_auth")


def test_get_job_card_skips_soft_deleted_rows() -> None:
    client = _mock_client([])

    assert SupabaseJobCardStore(client).get_job_card(UUID(int=100)) is None

    client.query.is_.assert_called_once_with("deleted_at", "null")


def test_list_job_card_parts_skips_soft_deleted_rows() -> None:
    client = _mock_client([])

    assert SupabaseAllocationLineStore(client).list_by_job_card(UUID(int=100)) == []

    client.query.eq.assert_called_once_with("job_card_id", str(UUID(int=100)))
    client.query.is_.assert_called_once_with("deleted_at", "null")
