"""
Storage interfaces consumed by the coordinators.

Coordinators depend on these protocols, not on Supabase. The Supabase
implementations live next to this module; tests use in-memory ones.

Every method may raise StoreError (see repositories.errors).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol, Sequence
from uuid import UUID

from domain.identity import Credential, Identity
from domain.inventory import LedgerEntry, Part
from domain.job_card import Allocation, JobCard
from domain.usage import UsageCounter


# Unique constraint a store reports when an identity insert reuses an email.
IDENTITY_EMAIL_CONSTRAINT: str = "users_email_key"


class IdentityStore(Protocol):
    def find_by_id(self, identity_id: UUID) -> Optional[Identity]: ...

    def find_by_handle_or_email(self, login_handle: str, email: str) -> Optional[Identity]: ...

    def insert(self, identity: Identity) -> UUID: ...

    def delete(self, identity_id: UUID) -> None: ...


class CredentialStore(Protocol):
    def insert(self, credential: Credential) -> UUID: ...

    def find_by_handle(self, login_handle: str) -> Optional[Credential]: ...

    def delete_by_identity(self, identity_id: UUID) -> None: ...


class CatalogStore(Protocol):
    def get_part(self, part_id: UUID) -> Optional[Part]: ...

    def decrement_stock(self, observed: Part, amount: int) -> int:
        """
        Decrement on-hand stock by `amount` (floored at zero) only if it still
        equals `observed.on_hand_stock`. Returns the new on-hand value.

        Raises StockConflictError when another writer changed the counter first.
        """
        ...


class LedgerStore(Protocol):
    """Append-only. There is intentionally no update or delete."""

    def append(self, entry: LedgerEntry) -> UUID: ...

    def list_by_part(self, part_id: UUID) -> List[LedgerEntry]: ...


class AllocationLineStore(Protocol):
    def insert_batch(self, allocations: Sequence[Allocation]) -> List[UUID]: ...

    def list_by_job_card(self, job_card_id: UUID) -> List[Allocation]: ...


class JobCardStore(Protocol):
    def get_job_card(self, job_card_id: UUID) -> Optional[JobCard]: ...

    def update_estimated_parts_cost(self, job_card_id: UUID, amount: Decimal, *, updated_at: datetime) -> None: ...


class UsageCounterStore(Protocol):
    def upsert(self, garage_id: str, field_name: str, field_value: str) -> None:
        """Create the counter with count=1 or increment it, as one atomic call."""
        ...

    def list_usage(self, garage_id: str, field_name: str) -> List[UsageCounter]: ...


__all__ = [
    "AllocationLineStore",
    "CatalogStore",
    "CredentialStore",
    "IDENTITY_EMAIL_CONSTRAINT",
    "IdentityStore",
    "JobCardStore",
    "LedgerStore",
    "UsageCounterStore",
]
