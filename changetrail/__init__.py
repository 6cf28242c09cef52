"""changetrail: row-level audit trail for PostgreSQL mutations.

Captures INSERT/UPDATE/DELETE statements, derives one immutable audit
record per affected row, and writes the records in the same transaction
as the mutation.
"""

from changetrail.audit import (
    AuditAction,
    AuditContext,
    AuditEngine,
    AuditRecord,
    AuditRecordBuilder,
    MutationCall,
    Predicate,
    audit_context,
    compute_diff,
    resolve_identity,
)

__version__ = "0.1.0"

__all__ = [
    "AuditAction",
    "AuditContext",
    "AuditEngine",
    "AuditRecord",
    "AuditRecordBuilder",
    "MutationCall",
    "Predicate",
    "audit_context",
    "compute_diff",
    "resolve_identity",
]
