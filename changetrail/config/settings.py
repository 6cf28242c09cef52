"""Root settings model for changetrail configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from changetrail.config.models.audit import AuditConfig
from changetrail.config.models.observability import ObservabilityConfig
from changetrail.config.models.storage import PostgresConfig

# Merged TOML layers read by FileLayerSource; replaced on every settings load
_file_layers: dict[str, Any] = {}


def set_file_layers(config: dict[str, Any]) -> None:
    """Install the merged TOML layers the next Settings() will read."""
    global _file_layers
    _file_layers = dict(config)


class FileLayerSource(PydanticBaseSettingsSource):
    """Feeds the merged TOML layers to pydantic-settings, below env vars."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _file_layers.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        fields = self.settings_cls.model_fields
        return {key: value for key, value in _file_layers.items() if key in fields}


class Settings(BaseSettings):
    """Root configuration object.

    Later layers override earlier ones:
    model defaults, config/default.toml, config/{CHANGETRAIL_ENV}.toml,
    CHANGETRAIL_* environment variables (`__` separates nested keys),
    constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANGETRAIL_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="changetrail",
        description="Service name stamped on every log event",
    )
    audit: AuditConfig = Field(
        default_factory=AuditConfig,
        description="What to audit and where records go",
    )
    database: PostgresConfig = Field(
        default_factory=PostgresConfig,
        description="PostgreSQL pool",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Logging and metrics",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, FileLayerSource(settings_cls))
