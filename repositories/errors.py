"""
Persistence-layer failures and the single place where Supabase queries execute.

Every write can end in one of two ways when it does not succeed:
- CONFIRMED: the backend told us it rejected the request (PostgREST error,
  connection never established). Nothing was written; compensating is safe.
- UNKNOWN: the request may have reached the database but we never saw the
  answer (read timeout, dropped connection). The write may or may not exist.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, List, Optional

import httpx
from postgrest.exceptions import APIError

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION: str = "23505"

_CONSTRAINT_NAME = re.compile(r'unique constraint "([^"]+)"')


class StoreOutcome(str, Enum):
    CONFIRMED = "confirmed"
    UNKNOWN = "unknown"


class StoreError(RuntimeError):
    """A storage call failed. `outcome` says whether the write may have happened."""

    def __init__(self, message: str, *, outcome: StoreOutcome = StoreOutcome.CONFIRMED, code: Optional[str] = None):
        self.outcome = outcome
        self.code = code
        super().__init__(message)

    @property
    def is_unknown(self) -> bool:
        return self.outcome is StoreOutcome.UNKNOWN


class DuplicateRecordError(StoreError):
    """
    The database rejected an insert because of a uniqueness constraint.

    `constraint` is the violated constraint's name when the backend reported it.
    """

    def __init__(self, message: str, *, constraint: Optional[str] = None, code: Optional[str] = UNIQUE_VIOLATION):
        self.constraint = constraint
        super().__init__(message, code=code)


class StockConflictError(StoreError):
    """A compare-and-swap stock update found a different value than the one observed."""


def _violated_constraint(*texts: Any) -> Optional[str]:
    for text in texts:
        match = _CONSTRAINT_NAME.search(str(text or ""))
        if match:
            return match.group(1)
    return None


def execute_query(query: Any, *, action: str) -> List[dict[str, Any]]:
    """
    Execute a postgrest query builder and return its rows.

    Translates transport and PostgREST failures into StoreError with the right
    outcome so callers never have to inspect httpx or postgrest types.
    """

    try:
        response = query.execute()
    except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
        raise StoreError(f"Failed to {action}: backend unreachable", outcome=StoreOutcome.CONFIRMED) from exc
    except httpx.TimeoutException as exc:
        raise StoreError(f"Timed out while trying to {action}", outcome=StoreOutcome.UNKNOWN) from exc
    except httpx.TransportError as exc:
        raise StoreError(f"Connection lost while trying to {action}", outcome=StoreOutcome.UNKNOWN) from exc
    except APIError as exc:
        code = str(exc.code) if exc.code is not None else None
        if code == UNIQUE_VIOLATION:
            raise DuplicateRecordError(
                f"Failed to {action}: duplicate record ({exc.message})",
                constraint=_violated_constraint(exc.message, exc.details),
            ) from exc
        raise StoreError(f"Failed to {action}: {exc.message}", code=code) from exc

    # Older client versions report errors on the response instead of raising.
    error = getattr(response, "error", None)
    if error:
        code = getattr(error, "code", None)
        if str(code) == UNIQUE_VIOLATION:
            raise DuplicateRecordError(
                f"Failed to {action}: duplicate record ({error})",
                constraint=_violated_constraint(getattr(error, "message", None), getattr(error, "details", None)),
            )
        raise StoreError(f"Failed to {action}: {error}", code=str(code) if code is not None else None)

    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


__all__ = [
    "DuplicateRecordError",
    "StockConflictError",
    "StoreError",
    "StoreOutcome",
    "UNIQUE_VIOLATION",
    "execute_query",
]
