"""Database utilities.

- asyncpg connection pool management
- Storage error hierarchy
"""

from changetrail.db.errors import ConnectionError, StorageError
from changetrail.db.pool import PostgresPool

__all__ = [
    "ConnectionError",
    "PostgresPool",
    "StorageError",
]
