"""Unit tests for PostgresAuditStore argument encoding and error wrapping."""

import json
from datetime import UTC, datetime
from uuid import UUID

import pytest

from changetrail.audit.builder import AuditRecordBuilder
from changetrail.audit.models import AuditAction, AuditContext, AuditRecord
from changetrail.audit.stores.postgres import PostgresAuditStore
from changetrail.db.errors import StorageError
from changetrail.db.pool import PostgresPool
from tests.factories import FakeConnection


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant {name}")


@pytest.fixture
def store() -> PostgresAuditStore:
    # Writes in these tests always pass a connection; the pool is never opened
    return PostgresAuditStore(PostgresPool(dsn="postgresql://localhost/unused"))


class TestWrite:
    @pytest.mark.asyncio
    async def test_metadata_with_rich_values_is_written(self, store) -> None:
        context = AuditContext(
            actor_id="u-1",
            metadata={
                "requested_at": datetime(2024, 1, 1, tzinfo=UTC),
                "request_id": UUID("12345678-1234-5678-1234-567812345678"),
            },
        )
        records = AuditRecordBuilder({"users": "id"}).build(
            AuditAction.INSERT, "users", context, after=[{"id": 1}]
        )
        conn = FakeConnection()

        await store.write(records, conn)

        [(query, args)] = conn.executed
        assert "INSERT INTO audit_logs" in query
        assert json.loads(args[0][9]) == {
            "requested_at": "2024-01-01T00:00:00+00:00",
            "request_id": "12345678-1234-5678-1234-567812345678",
        }
        assert conn.commits == 1

    @pytest.mark.asyncio
    async def test_non_finite_floats_written_as_strict_json(self, store) -> None:
        records = AuditRecordBuilder({"readings": "id"}).build(
            AuditAction.INSERT,
            "readings",
            after=[{"id": 1, "v": float("nan"), "peak": float("inf")}],
        )
        conn = FakeConnection()

        await store.write(records, conn)

        new_values = conn.executed[0][1][0][7]
        assert json.loads(new_values, parse_constant=_reject_constant) == {
            "id": 1,
            "v": "NaN",
            "peak": "Infinity",
        }

    @pytest.mark.asyncio
    async def test_unencodable_payload_raises_storage_error(self, store) -> None:
        record = AuditRecord(
            action=AuditAction.INSERT,
            table_name="users",
            record_id="1",
            metadata={"handle": object()},
        )
        conn = FakeConnection()

        with pytest.raises(StorageError) as exc_info:
            await store.write([record], conn)

        assert isinstance(exc_info.value.cause, TypeError)
        assert conn.executed == []

    @pytest.mark.asyncio
    async def test_empty_batch_skips_database(self, store) -> None:
        conn = FakeConnection()
        await store.write([], conn)
        assert conn.executed == []
