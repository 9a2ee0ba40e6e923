"""
FastAPI dependency providers.

One privileged Supabase client is created per process and handed to the
repositories; tests replace the coordinator providers with
`app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends
from supabase import Client

from repositories.client import create_privileged_client
from repositories.identity_repository import SupabaseCredentialStore, SupabaseIdentityStore
from repositories.job_card_repository import SupabaseAllocationLineStore, SupabaseJobCardStore
from repositories.ledger_repository import SupabaseLedgerStore
from repositories.part_repository import SupabaseCatalogStore
from repositories.usage_repository import SupabaseUsageCounterStore
from services.identity_provisioning_service import IdentityProvisioner
from services.inventory_allocation_service import AllocationCoordinator
from services.settings import AllocationSettings, load_allocation_settings
from services.usage_counter_service import UsageCounterTracker


@lru_cache(maxsize=1)
def get_privileged_client() -> Client:
    return create_privileged_client()


@lru_cache(maxsize=1)
def get_allocation_settings() -> AllocationSettings:
    return load_allocation_settings()


def get_identity_provisioner(client: Client = Depends(get_privileged_client)) -> IdentityProvisioner:
    return IdentityProvisioner(SupabaseIdentityStore(client), SupabaseCredentialStore(client))


def get_allocation_coordinator(
    client: Client = Depends(get_privileged_client),
    settings: AllocationSettings = Depends(get_allocation_settings),
) -> AllocationCoordinator:
    return AllocationCoordinator(
        SupabaseJobCardStore(client),
        SupabaseAllocationLineStore(client),
        SupabaseCatalogStore(client),
        SupabaseLedgerStore(client),
        settings=settings,
    )


def get_usage_tracker(client: Client = Depends(get_privileged_client)) -> UsageCounterTracker:
    return UsageCounterTracker(SupabaseUsageCounterStore(client))
