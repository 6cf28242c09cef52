"""Enums for the audit domain."""

from enum import Enum


class AuditAction(str, Enum):
    """Kind of mutating statement an audit record describes.

    - INSERT: row created; only new values are recorded
    - UPDATE: row modified; new values, optionally old values and a diff
    - DELETE: row removed; only old values are recorded
    """

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
