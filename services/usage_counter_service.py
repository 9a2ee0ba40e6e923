"""
Per-garage usage counters for inventory dropdown fields.

Every time a part is saved with e.g. category="Brakes", the (garage, field,
value) counter goes up by one. Dropdowns then list the garage's most used
values first, followed by the untouched defaults in their usual order.

Increments are a single atomic store call; concurrent recordings of the same
value are never lost.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Tuple

from domain.usage import FieldOption, UsageCounter
from repositories.errors import StoreError
from repositories.stores import UsageCounterStore
from services.errors import DependencyWriteError, FieldError, new_correlation_id
from services.validation import raise_if_invalid, require_choice, require_text

logger = logging.getLogger(__name__)

# Known values per tracked field, in their default display order.
FIELD_OPTIONS: Mapping[str, Tuple[str, ...]] = {
    "category": (
        "Engine",
        "Brakes",
        "Body",
        "Electrical",
        "Suspension",
        "Transmission",
        "Exhaust",
        "Tires & Wheels",
        "Filters",
        "Fluids",
        "Accessories",
        "Other",
    ),
    "usedFor": (
        "Engine",
        "Brakes",
        "Body",
        "Electrical",
        "Suspension",
        "Transmission",
        "Exhaust",
        "General",
    ),
}

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


class UsageCounterTracker:
    def __init__(self, store: UsageCounterStore):
        self._store = store

    def record_usage(self, garage_id: str, field_name: str, field_value: str) -> None:
        """
        Count one use of `field_value` for the garage.

        Raises:
            ValidationError: unknown field, or blank garage id / value
            DependencyWriteError: the increment failed
        """

        errors: List[FieldError] = []
        errors += require_text("garage_id", garage_id)
        errors += require_choice("field", field_name, FIELD_OPTIONS.keys())
        errors += require_text("value", field_value)
        raise_if_invalid(errors)

        value = field_value.strip()
        try:
            self._store.upsert(garage_id.strip(), field_name, value)
        except StoreError as exc:
            correlation_id = new_correlation_id()
            logger.error(
                "Failed to record field usage",
                extra={
                    "garage_id": garage_id,
                    "field_name": field_name,
                    "field_value": value,
                    "outcome": exc.outcome.value,
                    "store_error": str(exc),
                    "correlation_id": correlation_id,
                },
            )
            raise DependencyWriteError("increment_field_usage", exc.outcome, correlation_id) from exc

    def ranked_options(self, garage_id: str, field_name: str) -> List[FieldOption]:
        """
        Options for `field_name`, most used first.

        Used options are ordered by count, then by most recent use. Unused
        options follow in default order. Counters for values that are not
        known options are ignored. If usage cannot be read the defaults are
        returned with zero counts.
        """

        errors: List[FieldError] = []
        errors += require_text("garage_id", garage_id)
        errors += require_choice("field", field_name, FIELD_OPTIONS.keys())
        raise_if_invalid(errors)

        defaults = FIELD_OPTIONS[field_name]
        try:
            counters = self._store.list_usage(garage_id.strip(), field_name)
        except StoreError as exc:
            logger.warning(
                "Failed to read field usage; returning default options",
                extra={"garage_id": garage_id, "field_name": field_name, "store_error": str(exc)},
            )
            return [FieldOption(value=value, label=value) for value in defaults]

        usage: Dict[str, UsageCounter] = {
            counter.field_value: counter for counter in counters if counter.field_value in defaults
        }

        used = sorted(
            (value for value in defaults if value in usage),
            key=lambda value: (usage[value].usage_count, usage[value].last_used_at or _NEVER),
            reverse=True,
        )
        ranked = [
            FieldOption(
                value=value,
                label=value,
                usage_count=usage[value].usage_count,
                last_used_at=usage[value].last_used_at,
            )
            for value in used
        ]
        ranked += [FieldOption(value=value, label=value) for value in defaults if value not in usage]
        return ranked


__all__ = ["FIELD_OPTIONS", "UsageCounterTracker"]
