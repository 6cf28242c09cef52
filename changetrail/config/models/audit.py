"""Audit capture configuration."""

import re

from pydantic import BaseModel, Field, field_validator

# Unquoted SQL identifier
IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"
IDENTIFIER_PATTERN = re.compile(rf"^{IDENTIFIER}$")


class AuditConfig(BaseModel):
    """What to audit and how.

    `primary_keys` maps each table name to a key column or an ordered
    list of key columns. `tables` restricts auditing to a subset of those
    tables; when unset every table with a key entry is audited.
    """

    table_name: str = Field(
        default="audit_logs",
        description="Name of the table audit records are written to",
    )
    primary_keys: dict[str, str | list[str]] = Field(
        default_factory=dict,
        description="Primary-key column(s) per audited table",
    )
    tables: list[str] | None = Field(
        default=None,
        description="Tables to audit (default: every table in primary_keys)",
    )
    capture_old_values: bool = Field(
        default=False,
        description="Read rows before UPDATE so old values and diffs are recorded",
    )
    capture_deleted_values: bool = Field(
        default=True,
        description="Record removed rows for DELETE",
    )

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        if not IDENTIFIER_PATTERN.match(value):
            raise ValueError(f"Invalid table name: {value}")
        return value
