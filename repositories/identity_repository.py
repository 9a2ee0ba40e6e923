"""
Identity and credential repositories (persistence).

Backed by the `users` and `garage_auth` tables. These classes only persist and
fetch; pairing the two records is the provisioning service's job.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from supabase import Client

from domain.identity import Credential, Identity, StaffRole
from repositories.errors import execute_query
from repositories.timestamps import parse_optional_utc_datetime, to_iso_utc

# Keep these aligned with your database schema.
_USERS_TABLE: str = "users"
_AUTH_TABLE: str = "garage_auth"


def _row_to_identity(row: Mapping[str, Any]) -> Identity:
    """Convert a `users` row into an Identity."""

    return Identity(
        identity_id=UUID(str(row["user_uid"])),
        garage_uid=str(row["garage_uid"]),
        garage_id=str(row["garage_id"]),
        garage_name=str(row["garage_name"]),
        login_handle=str(row["login_id"]),
        first_name=str(row["first_name"]),
        last_name=str(row["last_name"]),
        role=StaffRole(str(row["user_role"])),
        email=str(row["email"]),
        phone=str(row.get("phone_number") or ""),
        employee_number=row.get("employee_id"),
        is_active=bool(row.get("is_active", True)),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
        updated_at=parse_optional_utc_datetime(row.get("updated_at")),
    )


def _row_to_credential(row: Mapping[str, Any]) -> Credential:
    """Convert a `garage_auth` row into a Credential."""

    return Credential(
        identity_id=UUID(str(row["user_uid"])),
        login_handle=str(row["login_id"]),
        role=StaffRole(str(row["user_role"])),
        garage_id=str(row.get("garage_id") or ""),
        garage_name=str(row.get("garage_name") or ""),
        first_name=str(row.get("first_name") or ""),
        last_name=str(row.get("last_name") or ""),
        password_hash=row.get("password_hash"),
        is_active=bool(row.get("is_active", True)),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
        updated_at=parse_optional_utc_datetime(row.get("updated_at")),
    )


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so `value` only matches itself."""

    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseIdentityStore:
    """IdentityStore over the `users` table."""

    def __init__(self, client: Client):
        self._client = client

    def find_by_id(self, identity_id: UUID) -> Optional[Identity]:
        rows = execute_query(
            self._client.table(_USERS_TABLE).select("*").eq("user_uid", str(identity_id)).limit(1),
            action="fetch user",
        )
        return _row_to_identity(rows[0]) if rows else None

    def find_by_handle_or_email(self, login_handle: str, email: str) -> Optional[Identity]:
        """
        Return any identity already using this handle or email.

        The handle match is checked first so a caller can report the more
        specific conflict when both collide.
        """

        rows = execute_query(
            self._client.table(_USERS_TABLE).select("*").eq("login_id", login_handle).limit(1),
            action="check login handle uniqueness",
        )
        if rows:
            return _row_to_identity(rows[0])

        # Older rows kept the email as typed, so match without regard to case.
        rows = execute_query(
            self._client.table(_USERS_TABLE).select("*").ilike("email", _escape_like(email)).limit(1),
            action="check email uniqueness",
        )
        return _row_to_identity(rows[0]) if rows else None

    def insert(self, identity: Identity) -> UUID:
        payload: dict[str, Any] = {
            "user_uid": str(identity.identity_id),
            "garage_uid": identity.garage_uid,
            "garage_id": identity.garage_id,
            "garage_name": identity.garage_name,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "employee_id": identity.employee_number,
            "login_id": identity.login_handle,
            "user_role": identity.role.value,
            "email": identity.email,
            "phone_number": identity.phone,
            "is_active": identity.is_active,
        }
        if identity.created_at is not None:
            payload["created_at"] = to_iso_utc(identity.created_at, name="created_at")
        if identity.updated_at is not None:
            payload["updated_at"] = to_iso_utc(identity.updated_at, name="updated_at")

        execute_query(self._client.table(_USERS_TABLE).insert(payload), action="insert user")
        return identity.identity_id

    def delete(self, identity_id: UUID) -> None:
        execute_query(
            self._client.table(_USERS_TABLE).delete().eq("user_uid", str(identity_id)),
            action="delete user",
        )


class SupabaseCredentialStore:
    """CredentialStore over the `garage_auth` table."""

    def __init__(self, client: Client):
        self._client = client

    def insert(self, credential: Credential) -> UUID:
        payload: dict[str, Any] = {
            "user_uid": str(credential.identity_id),
            "garage_id": credential.garage_id,
            "garage_name": credential.garage_name,
            "first_name": credential.first_name,
            "last_name": credential.last_name,
            "login_id": credential.login_handle,
            "user_role": credential.role.value,
            "password_hash": credential.password_hash,
            "is_active": credential.is_active,
        }
        if credential.created_at is not None:
            payload["created_at"] = to_iso_utc(credential.created_at, name="created_at")
        if credential.updated_at is not None:
            payload["updated_at"] = to_iso_utc(credential.updated_at, name="updated_at")

        execute_query(self._client.table(_AUTH_TABLE).insert(payload), action="insert auth record")
        return credential.identity_id

    def find_by_handle(self, login_handle: str) -> Optional[Credential]:
        rows = execute_query(
            self._client.table(_AUTH_TABLE).select("*").eq("login_id", login_handle).limit(1),
            action="check auth login handle",
        )
        return _row_to_credential(rows[0]) if rows else None

    def delete_by_identity(self, identity_id: UUID) -> None:
        execute_query(
            self._client.table(_AUTH_TABLE).delete().eq("user_uid", str(identity_id)),
            action="delete auth record",
        )


__all__ = ["SupabaseCredentialStore", "SupabaseIdentityStore"]
