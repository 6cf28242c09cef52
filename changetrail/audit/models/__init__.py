"""Audit domain models."""

from changetrail.audit.models.call import MutationCall, Predicate
from changetrail.audit.models.context import AuditContext
from changetrail.audit.models.enums import AuditAction
from changetrail.audit.models.record import AuditRecord

__all__ = [
    "AuditAction",
    "AuditContext",
    "AuditRecord",
    "MutationCall",
    "Predicate",
]
