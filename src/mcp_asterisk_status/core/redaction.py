"""Redaction helpers for log output."""

from __future__ import annotations

from collections.abc import Iterable

_SECRET_KEYS = frozenset({"secret", "password", "key"})


def redact_fields(fields: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Replace credential values in AMI key/value pairs."""
    return [(k, "<REDACTED>" if k.lower() in _SECRET_KEYS else v) for k, v in fields]
