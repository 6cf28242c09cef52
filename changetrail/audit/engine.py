"""Audit engine: the interception adapter applications wire up once.

Runs one mutating statement and its audit trail as a single unit inside
one transaction:

    before-state (optional explicit read) -> mutation with RETURNING *
    -> diff -> one record per row -> batch write

Any failure propagates and the transaction rolls back, so a committed
mutation always has its audit records.
"""

import time
from collections.abc import Iterable, Sequence
from typing import Any

import asyncpg

from changetrail.audit.builder import AuditRecordBuilder
from changetrail.audit.context import current_context
from changetrail.audit.errors import ConfigurationError, IdentityResolutionError
from changetrail.audit.identity import PrimaryKeySpec, resolve_identity, validate_primary_keys
from changetrail.audit.models import AuditAction, AuditContext, AuditRecord, MutationCall, Predicate
from changetrail.audit.snapshot import (
    execute_returning,
    execute_statement,
    fetch_before,
    quote_table_name,
)
from changetrail.audit.store import AuditWriter
from changetrail.config.models.audit import AuditConfig
from changetrail.db.errors import StorageError
from changetrail.observability.logging import get_logger
from changetrail.observability.metrics import (
    AUDIT_RECORDS,
    AUDIT_WRITE_ERRORS,
    AUDIT_WRITE_LATENCY,
    MUTATIONS_SKIPPED,
)

logger = get_logger(__name__)

Row = dict[str, Any]


class AuditEngine:
    """Executes audited mutations and records their audit trail.

    Holds only read-only configuration; per-call actor data comes from
    the `context` argument or from `audit_context(...)`, so one engine
    serves concurrent callers.
    """

    def __init__(
        self,
        writer: AuditWriter,
        primary_keys: PrimaryKeySpec,
        *,
        tables: Iterable[str] | None = None,
        capture_old_values: bool = False,
        capture_deleted_values: bool = True,
        metrics_enabled: bool = True,
    ) -> None:
        """Initialize and validate configuration.

        Args:
            writer: Store the audit records are written to
            primary_keys: Table name -> key column or ordered key columns
            tables: Tables to audit (default: every table in primary_keys)
            capture_old_values: Read rows before UPDATE to record old values and diffs
            capture_deleted_values: Record removed rows for DELETE
            metrics_enabled: Record Prometheus metrics

        Raises:
            ConfigurationError: If a key entry is invalid or an audited
                table has no key entry
        """
        primary_keys = dict(primary_keys)
        validate_primary_keys(primary_keys)

        audited = frozenset(tables) if tables is not None else frozenset(primary_keys)
        missing = sorted(audited - set(primary_keys))
        if missing:
            raise ConfigurationError(
                f"primary_keys missing key for audited tables: {', '.join(missing)}"
            )
        for table_name in audited:
            quote_table_name(table_name)

        self._writer = writer
        self._primary_keys = primary_keys
        self._tables = audited
        self._capture_old_values = capture_old_values
        self._capture_deleted_values = capture_deleted_values
        self._metrics_enabled = metrics_enabled
        self._builder = AuditRecordBuilder(primary_keys)

    @classmethod
    def from_config(
        cls,
        writer: AuditWriter,
        config: AuditConfig,
        *,
        metrics_enabled: bool = True,
    ) -> "AuditEngine":
        """Build an engine from the `audit` settings section."""
        return cls(
            writer,
            config.primary_keys,
            tables=config.tables,
            capture_old_values=config.capture_old_values,
            capture_deleted_values=config.capture_deleted_values,
            metrics_enabled=metrics_enabled,
        )

    @property
    def tables(self) -> frozenset[str]:
        return self._tables

    def is_audited(self, table_name: str) -> bool:
        return table_name in self._tables

    async def insert(
        self,
        conn: asyncpg.Connection,
        table_name: str,
        statement: str,
        *args: Any,
        context: AuditContext | None = None,
    ) -> list[Row]:
        """Execute an audited INSERT and return the inserted rows."""
        return await self.execute(
            conn, AuditAction.INSERT, table_name, statement, *args, context=context
        )

    async def update(
        self,
        conn: asyncpg.Connection,
        table_name: str,
        statement: str,
        *args: Any,
        predicate: Predicate | None = None,
        context: AuditContext | None = None,
    ) -> list[Row]:
        """Execute an audited UPDATE and return the updated rows.

        `predicate` must select the rows the statement updates; it is
        only read when old-value capture is enabled.
        """
        return await self.execute(
            conn,
            AuditAction.UPDATE,
            table_name,
            statement,
            *args,
            predicate=predicate,
            context=context,
        )

    async def delete(
        self,
        conn: asyncpg.Connection,
        table_name: str,
        statement: str,
        *args: Any,
        context: AuditContext | None = None,
    ) -> list[Row]:
        """Execute an audited DELETE and return the removed rows."""
        return await self.execute(
            conn, AuditAction.DELETE, table_name, statement, *args, context=context
        )

    async def execute(
        self,
        conn: asyncpg.Connection,
        action: AuditAction,
        table_name: str,
        statement: str,
        *args: Any,
        predicate: Predicate | None = None,
        context: AuditContext | None = None,
    ) -> list[Row]:
        """Execute a mutating statement and write its audit records.

        Runs in a transaction on `conn` (a savepoint if one is already
        open). The statement is rewritten to `RETURNING *` and the full
        affected rows are returned. Statements that produce no records
        (unaudited table, DELETE with capture_deleted_values off) run as
        written and return only what their own RETURNING clause reports.

        Raises:
            StorageError: If the snapshot read, the mutation or the audit
                write fails
            IdentityResolutionError: If an affected row has no identity
        """
        action = AuditAction(action)

        if not self.is_audited(table_name):
            self._count_skip(table_name, "not_audited")
            return await execute_statement(conn, statement, *args)

        if action == AuditAction.DELETE and not self._capture_deleted_values:
            self._count_skip(table_name, "deleted_values_disabled")
            return await execute_statement(conn, statement, *args)

        context = self._resolve_context(context)

        async with conn.transaction():
            before: list[Row] | None = None
            if action == AuditAction.UPDATE and self._capture_old_values:
                if predicate is None:
                    logger.warning("update_without_predicate", table_name=table_name)
                else:
                    before = await fetch_before(conn, table_name, predicate)

            rows = await execute_returning(conn, statement, *args)

            if action == AuditAction.DELETE:
                records = self._builder.build(action, table_name, context, before=rows)
            elif action == AuditAction.UPDATE and before is not None:
                paired = self._pair_before(table_name, before, rows)
                records = self._builder.build(
                    action, table_name, context, before=paired, after=rows
                )
            else:
                records = self._builder.build(action, table_name, context, after=rows)

            await self._write(records, conn)

        return rows

    async def record(
        self,
        call: MutationCall,
        conn: asyncpg.Connection | None = None,
    ) -> list[AuditRecord]:
        """Build and write the audit records of an already executed statement.

        Entry point for interception layers that run the statement
        themselves. Pass the mutation's connection so the write joins its
        transaction.
        """
        if not self.is_audited(call.table_name):
            self._count_skip(call.table_name, "not_audited")
            return []

        if call.action == AuditAction.DELETE and not self._capture_deleted_values:
            self._count_skip(call.table_name, "deleted_values_disabled")
            return []

        before = call.before_rows
        if call.action == AuditAction.UPDATE and not self._capture_old_values:
            before = None

        records = self._builder.build(
            call.action,
            call.table_name,
            self._resolve_context(call.context),
            before=before,
            after=call.after_rows,
        )
        await self._write(records, conn)
        return records

    # Helper methods
    def _resolve_context(self, context: AuditContext | None) -> AuditContext | None:
        return context if context is not None else current_context()

    def _pair_before(
        self,
        table_name: str,
        before: Sequence[Row],
        after: Sequence[Row],
    ) -> list[Row | None]:
        """Match before snapshots to returned rows by record identity.

        RETURNING order is not guaranteed to follow the snapshot read, and
        rows may have been inserted or removed concurrently between the
        two under weaker isolation levels.
        """
        by_identity: dict[str, Row] = {}
        for row in before:
            try:
                by_identity[resolve_identity(row, table_name, self._primary_keys)] = row
            except IdentityResolutionError:
                logger.warning("before_row_without_identity", table_name=table_name)

        paired: list[Row | None] = []
        for row in after:
            try:
                identity = resolve_identity(row, table_name, self._primary_keys)
            except IdentityResolutionError:
                paired.append(None)
                continue
            paired.append(by_identity.get(identity))
        return paired

    async def _write(
        self,
        records: list[AuditRecord],
        conn: asyncpg.Connection | None,
    ) -> None:
        if not records:
            return

        table_name = records[0].table_name
        started = time.perf_counter()
        try:
            await self._writer.write(records, conn)
        except StorageError:
            if self._metrics_enabled:
                AUDIT_WRITE_ERRORS.labels(table_name=table_name).inc()
            raise

        if self._metrics_enabled:
            AUDIT_WRITE_LATENCY.labels(table_name=table_name).observe(
                time.perf_counter() - started
            )
            AUDIT_RECORDS.labels(
                table_name=table_name, action=records[0].action.value
            ).inc(len(records))

        logger.info(
            "audit_records_written",
            table_name=table_name,
            action=records[0].action.value,
            count=len(records),
            transaction_id=records[0].transaction_id,
        )

    def _count_skip(self, table_name: str, reason: str) -> None:
        if self._metrics_enabled:
            MUTATIONS_SKIPPED.labels(table_name=table_name, reason=reason).inc()
        logger.debug("mutation_not_audited", table_name=table_name, reason=reason)
