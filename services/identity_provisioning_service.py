"""
Staff identity provisioning.

Adds an employee to the garage of the owner who invites them. Two records are
written: the identity (`users`) and its credential (`garage_auth`). The backend
cannot write both atomically, so the pair is created as a saga:

1. Resolve the owner's identity; its garage metadata is inherited.
2. Generate the login handle (first.last@garage).
3. Reject if the handle or email is already used (no automatic suffixing;
   emails compare without case). A credential left holding the handle by an
   identity that no longer exists is deleted first.
4. Insert the identity (active, no credential yet).
5. Insert the credential with no password hash.
6. If (5) fails, delete the identity. If that delete fails too, a
   CompensationFailure reports the orphaned identity.

Guarantee: on success exactly one identity and one credential exist and are
linked; on failure neither exists, or CompensationFailure was raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from domain.identity import Credential, Identity, IdentitySummary, StaffRole
from domain.time import utc_now
from repositories.errors import DuplicateRecordError
from repositories.stores import IDENTITY_EMAIL_CONSTRAINT, CredentialStore, IdentityStore
from services.errors import (
    ConflictError,
    DependencyWriteError,
    FieldError,
    NotFoundError,
)
from services.login_handle import generate_login_handle
from services.saga import Saga
from services.validation import (
    raise_if_invalid,
    require_choice,
    require_text,
    validate_email,
    validate_phone,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProvisionRequest:
    """
    Request to add a staff member to the inviting owner's garage.

    `role` is kept as the raw submitted string; validation turns it into a
    StaffRole.
    """

    tenant_owner_id: UUID
    first_name: str
    last_name: str
    role: str
    email: str
    phone: str
    employee_number: Optional[str] = None


def validate_provision_request(request: ProvisionRequest) -> List[FieldError]:
    """Check every field and return all problems at once."""

    errors: List[FieldError] = []
    errors += require_text("first_name", request.first_name)
    errors += require_text("last_name", request.last_name)
    errors += require_choice("role", request.role, StaffRole.values())
    errors += validate_email("email", request.email)
    errors += validate_phone("phone", request.phone)
    return errors


class IdentityProvisioner:
    """
    Creates identity + credential pairs.

    The stores must be backed by a privileged client (able to write other
    users' rows); the provisioner never builds one itself.
    """

    def __init__(
        self,
        identities: IdentityStore,
        credentials: CredentialStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._identities = identities
        self._credentials = credentials
        self._clock = clock

    def provision(self, request: ProvisionRequest) -> IdentitySummary:
        """
        Provision a new staff identity.

        Raises:
            ValidationError: malformed input (nothing written)
            NotFoundError: the inviting owner does not exist (nothing written)
            ConflictError: handle or email already in use
            DependencyWriteError: a write failed and was rolled back
            CompensationFailure: a write failed and the rollback failed too
            StoreError: a lookup failed before anything was written
        """

        raise_if_invalid(validate_provision_request(request))

        owner = self._identities.find_by_id(request.tenant_owner_id)
        if owner is None:
            raise NotFoundError("tenant owner", str(request.tenant_owner_id))

        handle = generate_login_handle(request.first_name, request.last_name, owner.garage_name)
        email = request.email.strip().lower()

        existing = self._identities.find_by_handle_or_email(handle, email)
        if existing is not None:
            if existing.login_handle == handle:
                raise ConflictError("handle", handle)
            raise ConflictError("email", email)
        self._clear_orphaned_credential(handle)

        now = self._clock()
        employee_number = (request.employee_number or "").strip() or None
        identity = Identity(
            identity_id=uuid4(),
            garage_uid=owner.garage_uid,
            garage_id=owner.garage_id,
            garage_name=owner.garage_name,
            login_handle=handle,
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
            role=StaffRole(request.role),
            email=email,
            phone=request.phone.strip(),
            employee_number=employee_number,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        credential = Credential.for_identity(identity)

        saga = Saga("provision_identity")
        saga.step(
            "insert_identity",
            lambda: self._identities.insert(identity),
            compensation=lambda: self._identities.delete(identity.identity_id),
            resource=f"users:{identity.identity_id}",
        )
        saga.step(
            "insert_credential",
            lambda: self._credentials.insert(credential),
            compensation=lambda: self._credentials.delete_by_identity(identity.identity_id),
            resource=f"garage_auth:{identity.identity_id}",
        )

        try:
            saga.run()
        except DependencyWriteError as exc:
            # Lost a race with a concurrent request for the same handle/email.
            cause = exc.__cause__
            if isinstance(cause, DuplicateRecordError):
                if exc.step == "insert_identity" and cause.constraint == IDENTITY_EMAIL_CONSTRAINT:
                    raise ConflictError("email", email) from exc
                raise ConflictError("handle", handle) from exc
            raise

        logger.info(
            "Provisioned staff identity",
            extra={
                "identity_id": str(identity.identity_id),
                "login_handle": handle,
                "garage_id": identity.garage_id,
                "role": identity.role.value,
            },
        )
        return IdentitySummary.from_identity(identity)

    def _clear_orphaned_credential(self, handle: str) -> None:
        """
        Delete a credential holding `handle` whose identity no longer exists.

        A credential that still belongs to an identity is a conflict instead.
        """

        credential = self._credentials.find_by_handle(handle)
        if credential is None:
            return
        if self._identities.find_by_id(credential.identity_id) is not None:
            raise ConflictError("handle", handle)

        logger.warning(
            "Removing orphaned credential before provisioning",
            extra={"identity_id": str(credential.identity_id), "login_handle": handle},
        )
        self._credentials.delete_by_identity(credential.identity_id)


__all__ = [
    "IdentityProvisioner",
    "ProvisionRequest",
    "validate_provision_request",
]
