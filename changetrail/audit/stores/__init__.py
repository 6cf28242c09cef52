"""Audit store implementations."""

from changetrail.audit.store import AuditWriter
from changetrail.audit.stores.inmemory import InMemoryAuditStore
from changetrail.audit.stores.postgres import PostgresAuditStore

__all__ = [
    "AuditWriter",
    "InMemoryAuditStore",
    "PostgresAuditStore",
]
