"""
Tests for the HTTP surface in `api/`.

Coordinators are wired to in-memory stores through FastAPI dependency
overrides; no Supabase client is created.
"""

from __future__ import annotations

from typing import Iterator
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_allocation_coordinator, get_identity_provisioner, get_usage_tracker
from api.main import app
from services.identity_provisioning_service import IdentityProvisioner
from services.inventory_allocation_service import AllocationCoordinator
from services.usage_counter_service import UsageCounterTracker

from fakes import (
    FakeAllocationLineStore,
    FakeCatalogStore,
    FakeCredentialStore,
    FakeIdentityStore,
    FakeJobCardStore,
    FakeLedgerStore,
    FakeUsageCounterStore,
    confirmed_error,
    fixed_clock,
    make_job_card,
    make_owner,
    make_part,
)

OWNER_ID = "00000000-0000-0000-0000-000000000001"
JOB_CARD_ID = "00000000-0000-0000-0000-0000000000c1"
PART_ID = "00000000-0000-0000-0000-0000000000a1"
ACTOR_ID = "00000000-0000-0000-0000-000000000002"


class Stores:
    def __init__(self) -> None:
        self.identities = FakeIdentityStore([make_owner(identity_id=UUID(OWNER_ID))])
        self.credentials = FakeCredentialStore()
        self.job_cards = FakeJobCardStore([make_job_card(job_card_id=UUID(JOB_CARD_ID))])
        self.lines = FakeAllocationLineStore()
        self.catalog = FakeCatalogStore([make_part(part_id=UUID(PART_ID), on_hand=3)])
        self.ledger = FakeLedgerStore()
        self.usage = FakeUsageCounterStore()


@pytest.fixture
def stores() -> Stores:
    return Stores()


@pytest.fixture
def client(stores: Stores) -> Iterator[TestClient]:
    app.dependency_overrides[get_identity_provisioner] = lambda: IdentityProvisioner(
        stores.identities, stores.credentials, clock=fixed_clock
    )
    app.dependency_overrides[get_allocation_coordinator] = lambda: AllocationCoordinator(
        stores.job_cards, stores.lines, stores.catalog, stores.ledger, clock=fixed_clock
    )
    app.dependency_overrides[get_usage_tracker] = lambda: UsageCounterTracker(stores.usage)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _employee(**overrides) -> dict:
    body = {
        "tenant_owner_id": OWNER_ID,
        "first_name": "José",
        "last_name": "Álvaro",
        "role": "mechanic",
        "email": "j@x.com",
        "phone": "+1 555-0100-1234",
    }
    body.update(overrides)
    return body


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_employee(client: TestClient) -> None:
    response = client.post("/api/v1/employees", json=_employee())

    assert response.status_code == 201
    body = response.json()
    assert body["login_handle"] == "jose.alvaro@riversidegarage"
    assert "password_hash" not in body


def test_duplicate_employee_is_409(client: TestClient) -> None:
    client.post("/api/v1/employees", json=_employee())

    response = client.post("/api/v1/employees", json=_employee(email="other@x.com"))

    assert response.status_code == 409
    assert response.json()["fields"] == [{"field": "handle", "message": "already in use"}]


def test_invalid_employee_is_422_with_all_fields(client: TestClient) -> None:
    response = client.post("/api/v1/employees", json=_employee(email="bad", phone="1", role="pilot"))

    assert response.status_code == 422
    assert [item["field"] for item in response.json()["fields"]] == ["role", "email", "phone"]


def test_unknown_owner_is_404(client: TestClient) -> None:
    response = client.post(
        "/api/v1/employees", json=_employee(tenant_owner_id="00000000-0000-0000-0000-00000000dead")
    )

    assert response.status_code == 404


def test_write_failure_is_502_without_store_details(client: TestClient, stores: Stores) -> None:
    stores.credentials.fail_on("insert", confirmed_error("secret backend detail"))

    response = client.post("/api/v1/employees", json=_employee())

    assert response.status_code == 502
    body = response.json()
    assert body["correlation_id"]
    assert "secret backend detail" not in response.text


def test_failed_rollback_is_500(client: TestClient, stores: Stores) -> None:
    stores.credentials.fail_on("insert", confirmed_error())
    stores.identities.fail_on("delete", confirmed_error())

    response = client.post("/api/v1/employees", json=_employee())

    assert response.status_code == 500
    assert response.json()["correlation_id"]


def test_allocate_parts_reports_clamp(client: TestClient, stores: Stores) -> None:
    response = client.post(
        f"/api/v1/job-cards/{JOB_CARD_ID}/parts",
        json={
            "performed_by": ACTOR_ID,
            "lines": [
                {"part_id": PART_ID, "part_name": "Brake pad set", "quantity": 5, "unit_price": "10.00"},
                {"part_name": "Customer oil", "quantity": 1, "unit_price": "0", "source": "customer"},
            ],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["partial"] is False
    assert [line["status"] for line in body["lines"]] == ["applied", "skipped"]
    assert body["lines"][0]["clamped"] is True
    assert len(body["parts"]) == 2
    assert stores.catalog.parts[UUID(PART_ID)].on_hand_stock == 0


def test_allocate_parts_validation_is_422(client: TestClient) -> None:
    response = client.post(
        f"/api/v1/job-cards/{JOB_CARD_ID}/parts",
        json={"performed_by": ACTOR_ID, "lines": []},
    )

    assert response.status_code == 422
    assert response.json()["fields"][0]["field"] == "lines"


def test_list_job_card_parts(client: TestClient) -> None:
    client.post(
        f"/api/v1/job-cards/{JOB_CARD_ID}/parts",
        json={"performed_by": ACTOR_ID, "lines": [{"part_id": PART_ID, "quantity": 1, "unit_price": "10"}]},
    )

    response = client.get(f"/api/v1/job-cards/{JOB_CARD_ID}/parts")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["parts"][0]["part_name"] == "Brake pad set"
    assert body["parts"][0]["category"] == "Brakes"


def test_unknown_job_card_is_404(client: TestClient) -> None:
    response = client.get("/api/v1/job-cards/00000000-0000-0000-0000-00000000beef/parts")

    assert response.status_code == 404


def test_field_options_round_trip(client: TestClient) -> None:
    for value in ("Brakes", "Brakes", "Filters"):
        assert client.post(
            "/api/v1/inventory/field-options",
            json={"garage_id": "GAR-001", "field": "category", "value": value},
        ).status_code == 204

    response = client.get("/api/v1/inventory/field-options", params={"field": "category", "garage_id": "GAR-001"})

    assert response.status_code == 200
    options = response.json()["options"]
    assert [option["value"] for option in options[:2]] == ["Brakes", "Filters"]
    assert options[0]["usage_count"] == 2


def test_unknown_field_is_422(client: TestClient) -> None:
    response = client.get("/api/v1/inventory/field-options", params={"field": "colour", "garage_id": "GAR-001"})

    assert response.status_code == 422
