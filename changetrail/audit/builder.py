"""Audit record construction.

Turns the before/after snapshots of one statement into one AuditRecord
per affected row.
"""

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import uuid4

from changetrail.audit.diff import compute_diff
from changetrail.audit.errors import IdentityResolutionError
from changetrail.audit.identity import PrimaryKeySpec, resolve_identity
from changetrail.audit.models import AuditAction, AuditContext, AuditRecord
from changetrail.audit.serialization import serialize_row, to_jsonable

Row = Mapping[str, Any]


class AuditRecordBuilder:
    """Builds audit records for one statement at a time.

    Holds only the read-only primary-key spec, so one builder can be
    shared by concurrent callers.
    """

    def __init__(self, primary_keys: PrimaryKeySpec) -> None:
        self._primary_keys = primary_keys

    def build(
        self,
        action: AuditAction,
        table_name: str,
        context: AuditContext | None = None,
        before: Sequence[Row | None] | None = None,
        after: Sequence[Row] | None = None,
    ) -> list[AuditRecord]:
        """Build one record per affected row.

        INSERT takes `after` only, DELETE takes `before` only, UPDATE takes
        `after` and optionally `before` paired row-for-row with it; a `None`
        entry in `before` means no snapshot for that row. Every record of
        the call shares one transaction id.

        Raises:
            ValueError: If the snapshots do not fit the action
            IdentityResolutionError: If a row has no resolvable identity;
                no records are returned for the batch
        """
        action = AuditAction(action)
        self._check_snapshots(action, before, after)

        context = context or AuditContext()
        transaction_id = context.transaction_id or str(uuid4())
        count = len(after) if after is not None else len(before or ())

        records = []
        for i in range(count):
            old_row = before[i] if before is not None else None
            new_row = after[i] if after is not None else None

            changed_fields = None
            if action == AuditAction.UPDATE and old_row is not None and new_row is not None:
                changed_fields = compute_diff(old_row, new_row).changed_fields

            records.append(
                AuditRecord(
                    actor_id=context.actor_id,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    action=action,
                    table_name=table_name,
                    record_id=self._record_id(table_name, new_row, old_row),
                    old_values=serialize_row(old_row),
                    new_values=serialize_row(new_row),
                    changed_fields=changed_fields,
                    metadata=to_jsonable(context.metadata),
                    transaction_id=transaction_id,
                )
            )
        return records

    def _record_id(self, table_name: str, new_row: Row | None, old_row: Row | None) -> str:
        error: IdentityResolutionError | None = None
        for row in (new_row, old_row):
            if row is None:
                continue
            try:
                return resolve_identity(row, table_name, self._primary_keys)
            except IdentityResolutionError as e:
                error = e
        raise IdentityResolutionError(
            f"No resolvable identity for row of table {table_name}: {error}"
        ) from error

    @staticmethod
    def _check_snapshots(
        action: AuditAction,
        before: Sequence[Row | None] | None,
        after: Sequence[Row] | None,
    ) -> None:
        if action == AuditAction.INSERT and (before is not None or after is None):
            raise ValueError("INSERT records take after rows only")
        if action == AuditAction.DELETE and (after is not None or before is None):
            raise ValueError("DELETE records take before rows only")
        if action == AuditAction.UPDATE:
            if after is None:
                raise ValueError("UPDATE records require after rows")
            if before is not None and len(before) != len(after):
                raise ValueError(
                    f"UPDATE snapshots differ in length: {len(before)} before, {len(after)} after"
                )
