"""
Domain: Staff identities and their credentials.

Invariants implemented here:
- An Identity belongs to exactly one garage (tenant) and carries a login handle
  that is unique across the whole system at the moment of creation.
- A Credential is keyed by its Identity's id and duplicates the handle and role
  for fast lookup at login time.
- A freshly provisioned Credential has no password hash; the owner sets one later.

This module contains only pure domain entities/value objects: no I/O, no database,
no frameworks. All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp


class StaffRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    SERVICE_ADVISOR = "service_advisor"
    MECHANIC = "mechanic"
    INVENTORY_MANAGER = "inventory_manager"
    RECEPTIONIST = "receptionist"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(role.value for role in cls)


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Primary staff record (the `users` collection).

    Tenant metadata (garage uid/id/name) is inherited from the owner who adds
    the staff member; it is copied rather than referenced so that list views
    never need a join.
    """

    identity_id: UUID
    garage_uid: str
    garage_id: str
    garage_name: str
    login_handle: str
    first_name: str
    last_name: str
    role: StaffRole
    email: str
    phone: str
    employee_number: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True, slots=True)
class Credential:
    """Authentication record paired one-to-one with an Identity (`garage_auth`)."""

    identity_id: UUID
    login_handle: str
    role: StaffRole
    garage_id: str
    garage_name: str
    first_name: str
    last_name: str
    password_hash: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    @staticmethod
    def for_identity(identity: Identity) -> "Credential":
        """Build the initial (password-less) credential for a new identity."""

        return Credential(
            identity_id=identity.identity_id,
            login_handle=identity.login_handle,
            role=identity.role,
            garage_id=identity.garage_id,
            garage_name=identity.garage_name,
            first_name=identity.first_name,
            last_name=identity.last_name,
            password_hash=None,
            is_active=identity.is_active,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
        )


@dataclass(frozen=True, slots=True)
class IdentitySummary:
    """What callers get back after provisioning. Never carries credential secrets."""

    identity_id: UUID
    login_handle: str
    first_name: str
    last_name: str
    role: StaffRole
    email: str
    phone: str
    garage_uid: str
    garage_id: str
    garage_name: str
    employee_number: Optional[str] = None

    @staticmethod
    def from_identity(identity: Identity) -> "IdentitySummary":
        return IdentitySummary(
            identity_id=identity.identity_id,
            login_handle=identity.login_handle,
            first_name=identity.first_name,
            last_name=identity.last_name,
            role=identity.role,
            email=identity.email,
            phone=identity.phone,
            garage_uid=identity.garage_uid,
            garage_id=identity.garage_id,
            garage_name=identity.garage_name,
            employee_number=identity.employee_number,
        )
