"""
Coordinator settings read from the environment (.env supported).

Environment variables (all optional):
- ALLOCATION_OVERDRAW_POLICY: "clamp" (default) or "reject"
- ALLOCATION_MAX_ATTEMPTS: compare-and-swap attempts per line (default 3)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from repositories.client import load_project_env


class OverdrawPolicy(str, Enum):
    """
    What to do when an inventory line asks for more than is on hand.

    CLAMP: decrement on-hand stock to zero and flag the line as clamped.
    REJECT: leave stock untouched and fail the line.
    """

    CLAMP = "clamp"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class AllocationSettings:
    overdraw_policy: OverdrawPolicy = OverdrawPolicy.CLAMP
    max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


def load_allocation_settings(environ: Optional[Mapping[str, str]] = None) -> AllocationSettings:
    """
    Build AllocationSettings from the environment.

    Raises:
        RuntimeError: if a variable is set to an unusable value
    """

    if environ is None:
        load_project_env()
        environ = os.environ

    raw_policy = environ.get("ALLOCATION_OVERDRAW_POLICY", OverdrawPolicy.CLAMP.value).strip().lower()
    try:
        policy = OverdrawPolicy(raw_policy)
    except ValueError:
        raise RuntimeError(
            f"Invalid ALLOCATION_OVERDRAW_POLICY: {raw_policy!r}. Use 'clamp' or 'reject'."
        ) from None

    raw_attempts = environ.get("ALLOCATION_MAX_ATTEMPTS", "3").strip()
    try:
        attempts = int(raw_attempts)
    except ValueError:
        raise RuntimeError(f"Invalid ALLOCATION_MAX_ATTEMPTS: {raw_attempts!r}. Use a positive integer.") from None
    if attempts < 1:
        raise RuntimeError(f"Invalid ALLOCATION_MAX_ATTEMPTS: {attempts}. Use a positive integer.")

    return AllocationSettings(overdraw_policy=policy, max_attempts=attempts)


__all__ = ["AllocationSettings", "OverdrawPolicy", "load_allocation_settings"]
