"""
Field validators shared by the coordinators.

Each validator returns a list of FieldError (empty when the value is fine) so a
request can be checked in one pass and every problem reported together, before
any store is touched.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from services.errors import FieldError, ValidationError

# Local part and domain labels may not start or end with a dot, or contain "..".
_EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9_%+-]+(?:\.[A-Za-z0-9_%+-]+)*"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*\.[A-Za-z]{2,}$"
)
_PHONE_CHARACTERS = re.compile(r"^[\d\s+\-().]+$")

PHONE_MIN_DIGITS: int = 10
PHONE_MAX_DIGITS: int = 15


def require_text(field: str, value: Optional[str]) -> List[FieldError]:
    if value is None or not str(value).strip():
        return [FieldError(field, "is required")]
    return []


def require_choice(field: str, value: Optional[str], choices: Iterable[str]) -> List[FieldError]:
    options = tuple(choices)
    if value not in options:
        return [FieldError(field, f"must be one of: {', '.join(options)}")]
    return []


def validate_email(field: str, value: Optional[str]) -> List[FieldError]:
    if value is None or not value.strip():
        return [FieldError(field, "is required")]
    if not _EMAIL_PATTERN.match(value.strip()):
        return [FieldError(field, "is not a valid email address")]
    return []


def phone_digits(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def validate_phone(field: str, value: Optional[str]) -> List[FieldError]:
    if value is None or not value.strip():
        return [FieldError(field, "is required")]
    if not _PHONE_CHARACTERS.match(value.strip()):
        return [FieldError(field, "may only contain digits, spaces and + - ( ) .")]
    digits = len(phone_digits(value))
    if digits < PHONE_MIN_DIGITS or digits > PHONE_MAX_DIGITS:
        return [FieldError(field, f"must have {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits")]
    return []


def validate_positive_int(field: str, value: Any) -> List[FieldError]:
    # bool is an int subclass; True is not a quantity.
    if isinstance(value, bool) or not isinstance(value, int):
        return [FieldError(field, "must be a whole number")]
    if value < 1:
        return [FieldError(field, "must be at least 1")]
    return []


def validate_non_negative_amount(field: str, value: Any) -> List[FieldError]:
    if isinstance(value, bool):
        return [FieldError(field, "must be a number")]
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return [FieldError(field, "must be a number")]
    if not amount.is_finite():
        return [FieldError(field, "must be a finite number")]
    if amount < 0:
        return [FieldError(field, "must be zero or more")]
    return []


def raise_if_invalid(errors: List[FieldError]) -> None:
    if errors:
        raise ValidationError(errors)


__all__ = [
    "PHONE_MAX_DIGITS",
    "PHONE_MIN_DIGITS",
    "phone_digits",
    "raise_if_invalid",
    "require_choice",
    "require_text",
    "validate_email",
    "validate_non_negative_amount",
    "validate_phone",
    "validate_positive_int",
]
