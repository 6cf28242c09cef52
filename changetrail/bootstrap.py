"""Wire settings, logging, pool, audit table and engine together."""

from dataclasses import dataclass

from changetrail.audit.engine import AuditEngine
from changetrail.audit.schema import ensure_audit_table
from changetrail.audit.stores.postgres import PostgresAuditStore
from changetrail.config import get_settings
from changetrail.config.settings import Settings
from changetrail.db.pool import PostgresPool
from changetrail.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class AuditRuntime:
    """Everything an application needs to run audited mutations."""

    settings: Settings
    pool: PostgresPool
    store: PostgresAuditStore
    engine: AuditEngine

    async def close(self) -> None:
        await self.pool.close()


async def start_audit(
    settings: Settings | None = None,
    *,
    provision: bool = True,
) -> AuditRuntime:
    """Configure logging, connect the pool and build the audit engine.

    Configuration errors (bad table name, missing primary keys) surface
    here, before any mutation runs.

    Args:
        settings: Settings to use (default: get_settings())
        provision: Create or upgrade the audit table on startup
    """
    settings = settings or get_settings()

    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_pii=log_config.redact_pii,
        app_name=settings.app_name,
    )

    pool = PostgresPool.from_config(settings.database)
    store = PostgresAuditStore(pool, settings.audit.table_name)
    engine = AuditEngine.from_config(
        store,
        settings.audit,
        metrics_enabled=settings.observability.metrics.enabled,
    )

    await pool.connect()
    try:
        if provision:
            await ensure_audit_table(pool, settings.audit.table_name)
    except Exception:
        await pool.close()
        raise

    logger.info(
        "audit_engine_started",
        audit_table=settings.audit.table_name,
        tables=sorted(engine.tables),
        capture_old_values=settings.audit.capture_old_values,
    )
    return AuditRuntime(settings=settings, pool=pool, store=store, engine=engine)
