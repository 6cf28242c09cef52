"""Canonical serialization of row values.

Row values come back from the store as datetimes, Decimals, UUIDs, big
ints and nested JSON. Identities, diffs and audit payloads all compare and
persist their canonical forms so that equal values from two different
round-trips serialize identically.
"""

import base64
import json
import math
from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel

CIRCULAR_PLACEHOLDER = "[Circular]"

# Largest integer a JSON consumer can hold without losing precision
MAX_SAFE_INTEGER = 2**53 - 1


def non_finite_text(value: float) -> str:
    """Render NaN and infinities as PostgreSQL spells them."""
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _canonical_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.isoformat()


def canonical_text(value: Any) -> str:
    """Render a scalar key value as its canonical string form.

    Strings are returned verbatim, integers in decimal form regardless of
    size, booleans as `true`/`false`, datetimes as ISO-8601 (aware values
    normalized to UTC). Anything else falls back to canonical JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, datetime):
        return _canonical_datetime(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return canonical_text(value.value)
    return canonical_dumps(value)


def to_jsonable(value: Any, _active: set[int] | None = None) -> Any:
    """Convert a value to a JSON-compatible canonical form.

    Containers on the current path are tracked by object identity; a
    container reached again through itself is replaced by
    CIRCULAR_PLACEHOLDER instead of recursing forever.
    """
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else non_finite_text(value)
    if isinstance(value, int):
        return value if abs(value) <= MAX_SAFE_INTEGER else str(value)
    if isinstance(value, datetime):
        return _canonical_datetime(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return to_jsonable(value.value, _active)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")

    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        active = _active if _active is not None else set()
        marker = id(value)
        if marker in active:
            return CIRCULAR_PLACEHOLDER
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                return {str(k): to_jsonable(v, active) for k, v in value.items()}
            if isinstance(value, (set, frozenset)):
                items = [to_jsonable(v, active) for v in value]
                return sorted(items, key=canonical_dumps)
            return [to_jsonable(v, active) for v in value]
        finally:
            active.discard(marker)

    return str(value)


def canonical_dumps(value: Any) -> str:
    """Serialize a value to compact, deterministic JSON text.

    Mapping key order is preserved; callers that need order independence
    must order keys themselves.
    """
    return json.dumps(
        to_jsonable(value),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def serialize_row(row: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Normalize a row snapshot into an audit payload."""
    if row is None:
        return None
    return {str(key): to_jsonable(value) for key, value in row.items()}
