"""
Login handle generation.

A staff member's handle is `first.last@garage`, each segment reduced to plain
lower-case ASCII letters and digits:

    generate_login_handle("José", "Álvaro", "Riverside Garage")
    # "jose.alvaro@riversidegarage"
"""

from __future__ import annotations

import re
import unicodedata

from services.errors import MalformedInputError

_DISALLOWED = re.compile(r"[^a-z0-9]")


def normalize_handle_segment(value: str) -> str:
    """Decompose, drop combining marks, lower-case, keep only [a-z0-9]."""

    decomposed = unicodedata.normalize("NFKD", value)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _DISALLOWED.sub("", without_marks.lower())


def generate_login_handle(first_name: str, last_name: str, tenant_name: str) -> str:
    """
    Build the canonical login handle for a staff member.

    Raises:
        MalformedInputError: if any segment normalizes to an empty string
    """

    segments = {}
    for field, raw in (("first_name", first_name), ("last_name", last_name), ("garage_name", tenant_name)):
        segment = normalize_handle_segment(raw or "")
        if not segment:
            raise MalformedInputError(field, "must contain at least one letter or digit")
        segments[field] = segment

    return f"{segments['first_name']}.{segments['last_name']}@{segments['garage_name']}"


__all__ = ["generate_login_handle", "normalize_handle_segment"]
