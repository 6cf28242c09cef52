"""Tests for start_audit wiring."""

import pytest
import structlog

from changetrail import bootstrap
from changetrail.audit.errors import ConfigurationError
from changetrail.config.settings import Settings, set_file_layers
from changetrail.db.errors import StorageError
from changetrail.db.pool import PostgresPool


@pytest.fixture
def pool_calls(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    set_file_layers({})
    calls: list[str] = []

    async def fake_connect(self) -> None:
        calls.append("connect")

    async def fake_close(self) -> None:
        calls.append("close")

    monkeypatch.setattr(PostgresPool, "connect", fake_connect)
    monkeypatch.setattr(PostgresPool, "close", fake_close)
    yield calls
    structlog.reset_defaults()


def make_settings(**audit) -> Settings:
    return Settings(
        audit={"primary_keys": {"users": "id"}, **audit},
        database={"connection_url": "postgresql://u:p@localhost/db"},
    )


class TestStartAudit:
    @pytest.mark.asyncio
    async def test_wires_engine_and_provisions(
        self, pool_calls: list[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        provisioned: list[str] = []

        async def fake_ensure(pool, table_name) -> None:
            provisioned.append(table_name)

        monkeypatch.setattr(bootstrap, "ensure_audit_table", fake_ensure)

        runtime = await bootstrap.start_audit(make_settings(table_name="trail"))

        assert pool_calls == ["connect"]
        assert provisioned == ["trail"]
        assert runtime.store.table_name == "trail"
        assert runtime.engine.is_audited("users")
        assert runtime.settings.app_name == "changetrail"

        await runtime.close()
        assert pool_calls == ["connect", "close"]

    @pytest.mark.asyncio
    async def test_skip_provisioning(
        self, pool_calls: list[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fail_ensure(pool, table_name) -> None:
            raise AssertionError("should not provision")

        monkeypatch.setattr(bootstrap, "ensure_audit_table", fail_ensure)

        await bootstrap.start_audit(make_settings(), provision=False)

        assert pool_calls == ["connect"]

    @pytest.mark.asyncio
    async def test_provision_failure_closes_pool(
        self, pool_calls: list[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_ensure(pool, table_name) -> None:
            raise StorageError("permission denied")

        monkeypatch.setattr(bootstrap, "ensure_audit_table", broken_ensure)

        with pytest.raises(StorageError):
            await bootstrap.start_audit(make_settings())

        assert pool_calls == ["connect", "close"]

    @pytest.mark.asyncio
    async def test_configuration_error_before_connecting(self, pool_calls: list[str]) -> None:
        settings = make_settings(tables=["users", "orders"])

        with pytest.raises(ConfigurationError):
            await bootstrap.start_audit(settings)

        assert pool_calls == []
