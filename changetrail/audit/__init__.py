"""Change capture and audit record derivation.

Contains:
- Record identity resolution and canonical serialization
- Snapshot acquisition (explicit read and RETURNING)
- Field diffs and audit record building
- Audit writers and table provisioning
- AuditEngine, the adapter that ties them together
"""

from changetrail.audit.builder import AuditRecordBuilder
from changetrail.audit.context import audit_context, current_context
from changetrail.audit.diff import RowDiff, compute_diff
from changetrail.audit.engine import AuditEngine
from changetrail.audit.errors import (
    AuditError,
    ConfigurationError,
    IdentityResolutionError,
    MissingKeyError,
)
from changetrail.audit.identity import resolve_identities, resolve_identity
from changetrail.audit.models import (
    AuditAction,
    AuditContext,
    AuditRecord,
    MutationCall,
    Predicate,
)
from changetrail.audit.schema import build_create_audit_table_sql, ensure_audit_table
from changetrail.audit.snapshot import ensure_returning, execute_returning, fetch_before

__all__ = [
    "AuditAction",
    "AuditContext",
    "AuditEngine",
    "AuditError",
    "AuditRecord",
    "AuditRecordBuilder",
    "ConfigurationError",
    "IdentityResolutionError",
    "MissingKeyError",
    "MutationCall",
    "Predicate",
    "RowDiff",
    "audit_context",
    "build_create_audit_table_sql",
    "compute_diff",
    "current_context",
    "ensure_audit_table",
    "ensure_returning",
    "execute_returning",
    "fetch_before",
    "resolve_identities",
    "resolve_identity",
]
