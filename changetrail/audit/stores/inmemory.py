"""In-memory implementation of AuditWriter."""

from collections.abc import Sequence
from datetime import UTC, datetime

import asyncpg

from changetrail.audit.models import AuditAction, AuditRecord
from changetrail.audit.store import AuditWriter


class InMemoryAuditStore(AuditWriter):
    """In-memory implementation of AuditWriter for testing and development.

    Assigns ids and creation times like the database would. Ignores the
    connection argument, so it does not roll back with the mutation.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []
        self._next_id = 1

    @property
    def records(self) -> list[AuditRecord]:
        """All persisted records in write order."""
        return list(self._records)

    async def write(
        self,
        records: Sequence[AuditRecord],
        conn: asyncpg.Connection | None = None,  # noqa: ARG002
    ) -> None:
        now = datetime.now(UTC)
        persisted = []
        for offset, record in enumerate(records):
            persisted.append(
                record.model_copy(update={"id": self._next_id + offset, "created_at": now})
            )
        self._records.extend(persisted)
        self._next_id += len(persisted)

    async def list_by_record(
        self,
        table_name: str,
        record_id: str,
        *,
        limit: int = 100,
    ) -> list[AuditRecord]:
        results = [
            r for r in self._live()
            if r.table_name == table_name and r.record_id == record_id
        ]
        return self._newest_first(results)[:limit]

    async def list_by_actor(self, actor_id: str, *, limit: int = 100) -> list[AuditRecord]:
        results = [r for r in self._live() if r.actor_id == actor_id]
        return self._newest_first(results)[:limit]

    async def list_by_transaction(self, transaction_id: str) -> list[AuditRecord]:
        return [r for r in self._live() if r.transaction_id == transaction_id]

    async def list_recent(
        self,
        *,
        table_name: str | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        results = []
        for record in self._live():
            if table_name is not None and record.table_name != table_name:
                continue
            if action is not None and record.action != action:
                continue
            results.append(record)
        return self._newest_first(results)[:limit]

    def _live(self) -> list[AuditRecord]:
        return [r for r in self._records if r.deleted_at is None]

    @staticmethod
    def _newest_first(records: list[AuditRecord]) -> list[AuditRecord]:
        # ids are monotonic, so they break created_at ties within a batch
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
