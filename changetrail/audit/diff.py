"""Field-level diff between two row snapshots."""

import math
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from changetrail.audit.serialization import (
    CIRCULAR_PLACEHOLDER,
    canonical_dumps,
    non_finite_text,
    to_jsonable,
)

_ABSENT = object()


class RowDiff(BaseModel):
    """Fields that differ between a before and an after snapshot."""

    changed_fields: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields


def _number(value: int | float | Decimal) -> Decimal | str:
    if isinstance(value, float):
        return Decimal(repr(value)) if math.isfinite(value) else non_finite_text(value)
    if isinstance(value, Decimal):
        if value.is_nan():
            return "NaN"
        if value.is_infinite():
            return "Infinity" if value > 0 else "-Infinity"
        return value
    return Decimal(value)


def comparable(value: Any, _active: set[int] | None = None) -> Any:
    """Reduce a value to a type-tagged form for equality checks.

    Numbers compare by numeric value whatever their Python type (1 == 1.0
    == Decimal("1.00")), datetimes by instant, mappings regardless of key
    order. The tag keeps a number from equalling its decimal text.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float, Decimal)):
        return ("number", _number(value))
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, Enum):
        return comparable(value.value, _active)
    if isinstance(value, (datetime, date, time)):
        return (type(value).__name__, to_jsonable(value))

    if isinstance(value, (Mapping, list, tuple)):
        active = _active if _active is not None else set()
        if id(value) in active:
            return ("str", CIRCULAR_PLACEHOLDER)
        active.add(id(value))
        try:
            if isinstance(value, Mapping):
                return ("map", {str(k): comparable(v, active) for k, v in value.items()})
            return ("list", [comparable(v, active) for v in value])
        finally:
            active.discard(id(value))

    return ("json", canonical_dumps(value))


def values_equal(old: Any, new: Any) -> bool:
    """Compare two values by content, not identity or representation."""
    if old is _ABSENT or new is _ABSENT:
        return old is new
    return comparable(old) == comparable(new)


def compute_diff(old_row: Mapping[str, Any], new_row: Mapping[str, Any]) -> RowDiff:
    """Compute the changed fields between two row snapshots.

    A field present in only one row counts as changed. Order follows the
    new row's keys, then keys only the old row has.
    """
    changed: list[str] = []

    for key, new_value in new_row.items():
        if not values_equal(old_row.get(key, _ABSENT), new_value):
            changed.append(key)

    for key in old_row:
        if key not in new_row:
            changed.append(key)

    return RowDiff(changed_fields=changed)
