"""Identifier parsing for path and body parameters.

Identifiers travel as opaque strings on the wire. They are checked here before
any store access so that a malformed id (``ValidationError``) is never confused
with a well-formed id that matches nothing (``NotFoundError``).
"""

from __future__ import annotations

import re

from .exceptions import ValidationError


# Primary keys are 32-bit INTEGER columns on PostgreSQL.
MAX_ID = 2**31 - 1

_ID_PATTERN = re.compile(r"^[1-9][0-9]{0,9}$")


def is_valid_id(raw: object) -> bool:
    """Return True if ``raw`` is an integer or decimal string in 1..MAX_ID."""
    if isinstance(raw, bool):
        return False
    if isinstance(raw, str):
        raw = raw.strip()
        if not _ID_PATTERN.match(raw):
            return False
        raw = int(raw)
    return isinstance(raw, int) and 0 < raw <= MAX_ID


def parse_id(raw: object, label: str = "id") -> int:
    """Parse an identifier or raise ``ValidationError``."""
    if not is_valid_id(raw):
        raise ValidationError(
            message=f"Invalid {label}",
            error_code="INVALID_ID",
            details={"field": label, "value": str(raw)},
        )
    return int(str(raw).strip())
