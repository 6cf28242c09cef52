"""PostgreSQL connection configuration."""

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """PostgreSQL pool configuration.

    The connection URL should come from the environment
    (CHANGETRAIL_DATABASE__CONNECTION_URL or DATABASE_URL), not from
    committed config files.
    """

    connection_url: str | None = Field(
        default=None,
        description="Connection URL (from env var)",
    )
    min_pool_size: int = Field(
        default=5,
        gt=0,
        description="Minimum connections to keep open",
    )
    max_pool_size: int = Field(
        default=20,
        gt=0,
        description="Maximum connections in pool",
    )
    max_inactive_connection_lifetime: float = Field(
        default=300.0,
        gt=0,
        description="Close connections idle longer than this (seconds)",
    )
    command_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Default timeout for queries (seconds)",
    )
