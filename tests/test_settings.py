"""
Tests for `services/settings.py`.
"""

from __future__ import annotations

import pytest

from services.settings import AllocationSettings, OverdrawPolicy, load_allocation_settings


def test_defaults_when_unset() -> None:
    assert load_allocation_settings({}) == AllocationSettings(OverdrawPolicy.CLAMP, 3)


def test_reads_policy_and_attempts() -> None:
    settings = load_allocation_settings({"ALLOCATION_OVERDRAW_POLICY": " Reject ", "ALLOCATION_MAX_ATTEMPTS": "5"})

    assert settings.overdraw_policy is OverdrawPolicy.REJECT
    assert settings.max_attempts == 5


@pytest.mark.parametrize(
    "environ",
    [
        {"ALLOCATION_OVERDRAW_POLICY": "borrow"},
        {"ALLOCATION_MAX_ATTEMPTS": "many"},
        {"ALLOCATION_MAX_ATTEMPTS": "0"},
    ],
)
def test_invalid_values_fail_loudly(environ: dict) -> None:
    with pytest.raises(RuntimeError):
        load_allocation_settings(environ)
