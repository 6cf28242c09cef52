"""Record identity resolution.

Derives the stable `record_id` of a row from the configured primary-key
column(s) of its table. Single keys render the value itself; composite
keys render a compact JSON object of the key columns in configured order.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from changetrail.audit.errors import ConfigurationError, MissingKeyError
from changetrail.audit.serialization import canonical_text, to_jsonable
from changetrail.observability.logging import get_logger

logger = get_logger(__name__)

PrimaryKeySpec = Mapping[str, str | Sequence[str]]


def key_fields(table_name: str, primary_keys: PrimaryKeySpec) -> list[str]:
    """Return the configured key column list for a table.

    Raises:
        ConfigurationError: If the table has no usable key entry
    """
    configured = primary_keys.get(table_name)
    if not configured:
        raise ConfigurationError(f"primary_keys missing key for table: {table_name}")
    fields = [configured] if isinstance(configured, str) else list(configured)
    if not fields or not all(isinstance(f, str) and f for f in fields):
        raise ConfigurationError(f"primary_keys has an invalid key for table: {table_name}")
    return fields


def validate_primary_keys(primary_keys: PrimaryKeySpec) -> None:
    """Check every entry of a primary-key spec up front."""
    for table_name in primary_keys:
        key_fields(table_name, primary_keys)


def resolve_identity(
    row: Mapping[str, Any],
    table_name: str,
    primary_keys: PrimaryKeySpec,
) -> str:
    """Derive the record identity of a row.

    Args:
        row: Row snapshot
        table_name: Table the row belongs to
        primary_keys: Table name -> key column or ordered key columns

    Returns:
        Canonical identity string

    Raises:
        ConfigurationError: If the table has no key entry
        MissingKeyError: If any key column is absent or None on the row
    """
    fields = key_fields(table_name, primary_keys)

    missing = [field for field in fields if row.get(field) is None]
    if missing:
        raise MissingKeyError(table_name, missing)

    if len(fields) == 1:
        try:
            return canonical_text(row[fields[0]])
        except Exception as e:
            return _fallback_identity(table_name, fields, e)

    return _composite_identity(table_name, {field: row[field] for field in fields})


def resolve_identities(
    rows: Sequence[Mapping[str, Any]],
    table_name: str,
    primary_keys: PrimaryKeySpec,
) -> list[str]:
    """Derive identities for several rows of the same table."""
    return [resolve_identity(row, table_name, primary_keys) for row in rows]


def _composite_identity(table_name: str, values: dict[str, Any]) -> str:
    try:
        return json.dumps(
            {field: to_jsonable(value) for field, value in values.items()},
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except Exception as e:
        return _fallback_identity(table_name, list(values), e)


def _fallback_identity(table_name: str, fields: list[str], error: Exception) -> str:
    # Deterministic for a given key definition; never raises
    fields = sorted(fields)
    logger.warning(
        "identity_fallback", table_name=table_name, fields=fields, error=str(error)
    )
    return f"composite_key_{'_'.join(fields)}_{len(fields)}"
