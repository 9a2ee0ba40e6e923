"""
Tests for `services/usage_counter_service.py`.

Covers:
- N concurrent recordings of the same value end at count N.
- Ranked options: most used first, ties by most recent use, unused last in
  default order.
- Read failures fall back to the default options.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest

from repositories.errors import StoreOutcome
from services.errors import DependencyWriteError, ValidationError
from services.usage_counter_service import FIELD_OPTIONS, UsageCounterTracker

from fakes import FakeUsageCounterStore, confirmed_error, unknown_error

GARAGE = "GAR-001"


def _ticking_clock() -> Iterator[datetime]:
    current = datetime(2025, 1, 1, tzinfo=timezone.utc)
    while True:
        current += timedelta(minutes=1)
        yield current


@pytest.fixture
def store() -> FakeUsageCounterStore:
    ticks = _ticking_clock()
    return FakeUsageCounterStore(clock=lambda: next(ticks))


@pytest.fixture
def tracker(store: FakeUsageCounterStore) -> UsageCounterTracker:
    return UsageCounterTracker(store)


def test_concurrent_recordings_are_not_lost(tracker: UsageCounterTracker, store: FakeUsageCounterStore) -> None:
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: tracker.record_usage(GARAGE, "category", "Brakes"), range(50)))

    assert store.counters[(GARAGE, "category", "Brakes")].usage_count == 50


def test_ranked_options_orders_by_count_then_recency(tracker: UsageCounterTracker) -> None:
    for value in ("Filters", "Brakes", "Brakes", "Engine", "Engine"):
        tracker.record_usage(GARAGE, "category", value)

    options = tracker.ranked_options(GARAGE, "category")

    # Engine and Brakes tie on count; Engine was used last.
    assert [option.value for option in options[:3]] == ["Engine", "Brakes", "Filters"]
    assert [option.usage_count for option in options[:3]] == [2, 2, 1]
    unused = [value for value in FIELD_OPTIONS["category"] if value not in {"Engine", "Brakes", "Filters"}]
    assert [option.value for option in options[3:]] == unused
    assert all(option.usage_count == 0 and option.last_used_at is None for option in options[3:])


def test_counters_are_per_garage_and_field(tracker: UsageCounterTracker) -> None:
    tracker.record_usage(GARAGE, "category", "Body")
    tracker.record_usage("GAR-002", "category", "Exhaust")
    tracker.record_usage(GARAGE, "usedFor", "General")

    assert tracker.ranked_options(GARAGE, "category")[0].value == "Body"
    assert tracker.ranked_options("GAR-002", "category")[0].value == "Exhaust"
    assert tracker.ranked_options(GARAGE, "usedFor")[0].value == "General"


def test_values_are_trimmed(tracker: UsageCounterTracker, store: FakeUsageCounterStore) -> None:
    tracker.record_usage(GARAGE, "category", "  Fluids ")

    assert (GARAGE, "category", "Fluids") in store.counters


def test_unknown_values_are_counted_but_not_offered(tracker: UsageCounterTracker, store: FakeUsageCounterStore) -> None:
    tracker.record_usage(GARAGE, "category", "Bespoke")

    assert store.counters[(GARAGE, "category", "Bespoke")].usage_count == 1
    assert "Bespoke" not in [option.value for option in tracker.ranked_options(GARAGE, "category")]


def test_read_failure_returns_defaults(tracker: UsageCounterTracker, store: FakeUsageCounterStore) -> None:
    store.fail_on("list_usage", confirmed_error())

    options = tracker.ranked_options(GARAGE, "usedFor")

    assert [option.value for option in options] == list(FIELD_OPTIONS["usedFor"])


def test_write_failure_raises_dependency_error(tracker: UsageCounterTracker, store: FakeUsageCounterStore) -> None:
    store.fail_on("upsert", unknown_error())

    with pytest.raises(DependencyWriteError) as excinfo:
        tracker.record_usage(GARAGE, "category", "Brakes")

    assert excinfo.value.outcome is StoreOutcome.UNKNOWN


@pytest.mark.parametrize(
    "garage_id, field, value, bad_fields",
    [
        (GARAGE, "colour", "Red", ["field"]),
        (GARAGE, "category", "   ", ["value"]),
        ("", "category", "Brakes", ["garage_id"]),
    ],
)
def test_record_usage_validation(
    tracker: UsageCounterTracker, store: FakeUsageCounterStore, garage_id: str, field: str, value: str, bad_fields
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        tracker.record_usage(garage_id, field, value)

    assert excinfo.value.fields == bad_fields
    assert store.calls == []
