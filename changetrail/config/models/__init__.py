"""Configuration model exports."""

from changetrail.config.models.audit import AuditConfig
from changetrail.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from changetrail.config.models.storage import PostgresConfig

__all__ = [
    "AuditConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "PostgresConfig",
]
