"""Audit table provisioning.

Creates the audit table, its sequence and indexes idempotently, and
upgrades older tables in place. Concurrent first runs serialize on a
transaction-scoped advisory lock with the fixed key (913742, 540129).
"""

import asyncpg

from changetrail.audit.errors import ConfigurationError
from changetrail.config.models.audit import IDENTIFIER_PATTERN
from changetrail.db.errors import StorageError
from changetrail.db.pool import PostgresPool
from changetrail.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TABLE_NAME = "audit_logs"

ADVISORY_LOCK_KEY = (913742, 540129)


def validate_table_name(table_name: str) -> str:
    """Reject anything but letters, digits and underscores.

    Raises:
        ConfigurationError: If the name could inject SQL
    """
    if not isinstance(table_name, str) or not IDENTIFIER_PATTERN.match(table_name):
        raise ConfigurationError(f"Invalid table name: {table_name!r}")
    return table_name


def build_create_audit_table_sql(table_name: str = DEFAULT_TABLE_NAME) -> str:
    """Return the DDL script that provisions an audit table.

    Safe to run repeatedly. Must run inside a transaction for the
    advisory lock to cover the whole script.
    """
    t = validate_table_name(table_name)
    lock_a, lock_b = ADVISORY_LOCK_KEY

    return f"""
SELECT pg_advisory_xact_lock({lock_a}, {lock_b});

CREATE SEQUENCE IF NOT EXISTS {t}_id_seq;

CREATE TABLE IF NOT EXISTS {t} (
  id BIGINT PRIMARY KEY DEFAULT nextval('{t}_id_seq'),

  actor_id VARCHAR(255),
  ip_address VARCHAR(45),
  user_agent TEXT,

  action VARCHAR(255) NOT NULL,
  table_name VARCHAR(255) NOT NULL,
  record_id VARCHAR(255) NOT NULL,

  old_values JSONB,
  new_values JSONB,
  changed_fields JSONB,

  created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),

  metadata JSONB,
  transaction_id VARCHAR(255),

  deleted_at TIMESTAMPTZ
);

ALTER SEQUENCE {t}_id_seq OWNED BY {t}.id;

-- Columns added after the first release
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS actor_id VARCHAR(255);
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS ip_address VARCHAR(45);
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS user_agent TEXT;
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS old_values JSONB;
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS new_values JSONB;
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS changed_fields JSONB;
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS metadata JSONB;
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS transaction_id VARCHAR(255);
ALTER TABLE {t} ADD COLUMN IF NOT EXISTS deleted_at TIMESTAMPTZ;

-- Older tables restricted action to a fixed list
ALTER TABLE {t} DROP CONSTRAINT IF EXISTS {t}_action_check;
ALTER TABLE {t} ALTER COLUMN action TYPE VARCHAR(255);

CREATE INDEX IF NOT EXISTS idx_{t}_table_record ON {t}(table_name, record_id);
CREATE INDEX IF NOT EXISTS idx_{t}_actor_id ON {t}(actor_id) WHERE actor_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_{t}_created_at ON {t}(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_{t}_action ON {t}(action);
CREATE INDEX IF NOT EXISTS idx_{t}_table_created ON {t}(table_name, created_at DESC);

COMMENT ON TABLE {t} IS 'Audit trail for all database operations';
"""


async def ensure_audit_table(
    target: PostgresPool | asyncpg.Connection,
    table_name: str = DEFAULT_TABLE_NAME,
) -> None:
    """Create or upgrade the audit table.

    Args:
        target: Pool to acquire a connection from, or an open connection
        table_name: Audit table name

    Raises:
        ConfigurationError: If the table name is invalid
        StorageError: If the DDL fails
    """
    script = build_create_audit_table_sql(table_name)

    try:
        if isinstance(target, PostgresPool):
            async with target.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(script)
        else:
            async with target.transaction():
                await target.execute(script)
    except Exception as e:
        logger.error("audit_table_provision_error", audit_table=table_name, error=str(e))
        raise StorageError(f"Failed to provision audit table {table_name}: {e}", cause=e) from e

    logger.info("audit_table_ready", audit_table=table_name)
