"""
Errors raised by the write coordinators.

Callers (HTTP handlers) map these to responses:
- ValidationError / MalformedInputError: field-level descriptions, shown verbatim.
- NotFoundError: a referenced tenant owner, part or job card does not exist.
- ConflictError: a uniqueness rule would be violated; the caller must change input.
- DependencyWriteError: a required write failed after validation passed.
- CompensationFailure: a rollback step failed and left an orphaned record behind.

Dependency and compensation errors expose only a generic message and a
correlation id; the underlying store error is logged, not returned.

A partially applied allocation is not an error: it is reported on the
AllocationResult returned by the allocation coordinator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
from uuid import uuid4

from repositories.errors import StoreOutcome


def new_correlation_id() -> str:
    return uuid4().hex


class CoordinatorError(Exception):
    """Base class for every failure a coordinator reports to its caller."""


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    message: str


class ValidationError(CoordinatorError):
    """Raised when input fails validation. Never retried."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(f"{error.field}: {error.message}" for error in self.errors))

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]


class MalformedInputError(ValidationError):
    """Raised when input normalizes to nothing usable (e.g. an empty handle segment)."""

    def __init__(self, field: str, message: str):
        super().__init__([FieldError(field=field, message=message)])
        self.field = field


class NotFoundError(CoordinatorError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ConflictError(CoordinatorError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} already in use: {value}")


class DependencyWriteError(CoordinatorError):
    """
    A required write step failed after validation passed.

    `outcome` tells whether the failed write is known not to have happened
    (confirmed) or may have happened (unknown).
    """

    public_message: str = "A required write failed; no changes were kept."

    def __init__(self, step: str, outcome: StoreOutcome, correlation_id: Optional[str] = None):
        self.step = step
        self.outcome = outcome
        self.correlation_id = correlation_id or new_correlation_id()
        super().__init__(f"Write step '{step}' failed ({outcome.value}); correlation_id={self.correlation_id}")


class CompensationFailure(CoordinatorError):
    """
    Rolling back a partially completed write sequence failed.

    The records named in `orphaned` are left in an inconsistent state and need
    manual remediation. This is never downgraded to a generic error.
    """

    public_message: str = "The operation failed and could not be fully rolled back. Support has been notified."

    def __init__(self, failed_step: str, orphaned: Sequence[str], correlation_id: str):
        self.failed_step = failed_step
        self.orphaned = list(orphaned)
        self.correlation_id = correlation_id
        super().__init__(
            f"CRITICAL: compensation after '{failed_step}' failed; orphaned: {', '.join(self.orphaned)}; "
            f"correlation_id={correlation_id}"
        )


__all__ = [
    "CompensationFailure",
    "ConflictError",
    "CoordinatorError",
    "DependencyWriteError",
    "FieldError",
    "MalformedInputError",
    "NotFoundError",
    "ValidationError",
    "new_correlation_id",
]
