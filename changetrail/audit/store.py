"""AuditWriter abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

import asyncpg

from changetrail.audit.models import AuditAction, AuditRecord


class AuditWriter(ABC):
    """Abstract interface for audit storage.

    Writes batches of audit records and serves the lookups the audit
    table is indexed for. Soft-deleted records are excluded from reads.
    """

    @abstractmethod
    async def write(
        self,
        records: Sequence[AuditRecord],
        conn: asyncpg.Connection | None = None,
    ) -> None:
        """Persist all records of one statement as a single batch.

        When `conn` is the mutation's connection the batch joins its
        transaction, so the audit trail commits or rolls back with the
        mutation. No retries; failures raise StorageError.
        """
        pass

    @abstractmethod
    async def list_by_record(
        self,
        table_name: str,
        record_id: str,
        *,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """History of one row, newest first."""
        pass

    @abstractmethod
    async def list_by_actor(self, actor_id: str, *, limit: int = 100) -> list[AuditRecord]:
        """Changes made by one actor, newest first."""
        pass

    @abstractmethod
    async def list_by_transaction(self, transaction_id: str) -> list[AuditRecord]:
        """Records sharing a transaction id, in write order."""
        pass

    @abstractmethod
    async def list_recent(
        self,
        *,
        table_name: str | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """Most recent records, optionally filtered by table and action."""
        pass
