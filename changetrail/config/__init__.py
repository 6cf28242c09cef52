"""Configuration loading for changetrail.

Configuration is loaded from TOML files with environment variable
overrides.

Usage:
    from changetrail.config import get_settings

    settings = get_settings()
    primary_keys = settings.audit.primary_keys
"""

from functools import lru_cache

from changetrail.config.loader import load_config
from changetrail.config.settings import Settings, set_file_layers


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process; see Settings for layer precedence."""
    set_file_layers(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
