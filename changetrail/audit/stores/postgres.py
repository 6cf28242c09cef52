"""PostgreSQL implementation of AuditWriter.

Uses asyncpg. Writes can join the caller's transaction so audit rows
commit and roll back together with the audited mutation.
"""

import json
from collections.abc import Sequence
from typing import Any

import asyncpg

from changetrail.audit.models import AuditAction, AuditRecord
from changetrail.audit.schema import DEFAULT_TABLE_NAME, validate_table_name
from changetrail.audit.store import AuditWriter
from changetrail.db.errors import StorageError
from changetrail.db.pool import PostgresPool
from changetrail.observability.logging import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, actor_id, ip_address, user_agent, action, table_name, record_id,
    old_values, new_values, changed_fields, metadata, transaction_id,
    created_at, deleted_at
"""


class PostgresAuditStore(AuditWriter):
    """PostgreSQL implementation of AuditWriter.

    All records are immutable once written.
    """

    def __init__(self, pool: PostgresPool, table_name: str = DEFAULT_TABLE_NAME) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
            table_name: Audit table name, validated as a plain identifier

        Raises:
            ConfigurationError: If the table name is not a safe identifier
        """
        validate_table_name(table_name)
        self._pool = pool
        self._table = table_name
        self._insert_sql = f"""
            INSERT INTO {table_name} (
                actor_id, ip_address, user_agent, action, table_name, record_id,
                old_values, new_values, changed_fields, metadata, transaction_id
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        """  # noqa: S608

    @property
    def table_name(self) -> str:
        return self._table

    async def write(
        self,
        records: Sequence[AuditRecord],
        conn: asyncpg.Connection | None = None,
    ) -> None:
        """Insert a batch of records in one transaction."""
        if not records:
            return

        try:
            args = [self._record_args(record) for record in records]
            if conn is not None:
                # Savepoint inside the mutation's transaction
                async with conn.transaction():
                    await conn.executemany(self._insert_sql, args)
            else:
                async with self._pool.acquire() as own_conn:
                    async with own_conn.transaction():
                        await own_conn.executemany(self._insert_sql, args)
        except Exception as e:
            logger.error(
                "postgres_audit_write_error",
                audit_table=self._table,
                table_name=records[0].table_name,
                count=len(records),
                error=str(e),
            )
            raise StorageError(f"Failed to write audit records: {e}", cause=e) from e

        logger.debug(
            "postgres_audit_records_written",
            audit_table=self._table,
            table_name=records[0].table_name,
            count=len(records),
        )

    async def list_by_record(
        self,
        table_name: str,
        record_id: str,
        *,
        limit: int = 100,
    ) -> list[AuditRecord]:
        return await self._select(
            "table_name = $1 AND record_id = $2",
            [table_name, record_id],
            order="created_at DESC, id DESC",
            limit=limit,
        )

    async def list_by_actor(self, actor_id: str, *, limit: int = 100) -> list[AuditRecord]:
        return await self._select(
            "actor_id = $1",
            [actor_id],
            order="created_at DESC, id DESC",
            limit=limit,
        )

    async def list_by_transaction(self, transaction_id: str) -> list[AuditRecord]:
        return await self._select("transaction_id = $1", [transaction_id], order="id ASC")

    async def list_recent(
        self,
        *,
        table_name: str | None = None,
        action: AuditAction | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        conditions: list[str] = []
        params: list[Any] = []

        if table_name is not None:
            params.append(table_name)
            conditions.append(f"table_name = ${len(params)}")

        if action is not None:
            params.append(AuditAction(action).value)
            conditions.append(f"action = ${len(params)}")

        return await self._select(
            " AND ".join(conditions) or "TRUE",
            params,
            order="created_at DESC, id DESC",
            limit=limit,
        )

    # Helper methods
    async def _select(
        self,
        where: str,
        params: list[Any],
        *,
        order: str,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        query = (
            f"SELECT {_COLUMNS} FROM {self._table} "  # noqa: S608
            f"WHERE deleted_at IS NULL AND {where} ORDER BY {order}"
        )
        if limit is not None:
            params = [*params, limit]
            query += f" LIMIT ${len(params)}"

        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *params)
        except Exception as e:
            logger.error("postgres_audit_query_error", audit_table=self._table, error=str(e))
            raise StorageError(f"Failed to query audit records: {e}", cause=e) from e
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _record_args(record: AuditRecord) -> tuple[Any, ...]:
        return (
            record.actor_id,
            record.ip_address,
            record.user_agent,
            record.action.value,
            record.table_name,
            record.record_id,
            _dump_json(record.old_values),
            _dump_json(record.new_values),
            _dump_json(record.changed_fields),
            _dump_json(record.metadata),
            record.transaction_id,
        )

    @staticmethod
    def _row_to_record(row: Any) -> AuditRecord:
        return AuditRecord(
            id=row["id"],
            actor_id=row["actor_id"],
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            action=AuditAction(row["action"]),
            table_name=row["table_name"],
            record_id=row["record_id"],
            old_values=_load_json(row["old_values"]),
            new_values=_load_json(row["new_values"]),
            changed_fields=_load_json(row["changed_fields"]),
            metadata=_load_json(row["metadata"]),
            transaction_id=row["transaction_id"],
            created_at=row["created_at"],
            deleted_at=row["deleted_at"],
        )


def _dump_json(value: Any) -> str | None:
    return None if value is None else json.dumps(value, ensure_ascii=False, allow_nan=False)


def _load_json(value: Any) -> Any:
    # asyncpg returns jsonb as text unless a codec is registered
    if isinstance(value, str):
        return json.loads(value)
    return value
