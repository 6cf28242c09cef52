"""Locate and merge the layered TOML files behind Settings.

Layers, later wins:
    config/default.toml
    config/{CHANGETRAIL_ENV}.toml

Both layers are optional; model defaults cover whatever they leave out.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "CHANGETRAIL_CONFIG_DIR"
ENVIRONMENT_ENV = "CHANGETRAIL_ENV"
DEFAULT_ENVIRONMENT = "development"


def get_config_dir() -> Path:
    """Return the directory holding the TOML layers.

    CHANGETRAIL_CONFIG_DIR wins when set and must exist. Otherwise the
    nearest `config/` directory from the working directory upwards.

    Raises:
        FileNotFoundError: If CHANGETRAIL_CONFIG_DIR names a missing directory
    """
    explicit = os.environ.get(CONFIG_DIR_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_dir():
            raise FileNotFoundError(f"{CONFIG_DIR_ENV} is not a directory: {explicit}")
        return path

    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / "config"
        if candidate.is_dir():
            return candidate
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def config_layers(config_dir: Path, environment: str) -> list[Path]:
    """Existing layer files in merge order."""
    candidates = [config_dir / "default.toml", config_dir / f"{environment}.toml"]
    return [path for path in candidates if path.is_file()]


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    try:
        with file_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from e


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`; tables merge, everything else replaces."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_dir: Path | None = None,
    environment: str | None = None,
) -> dict[str, Any]:
    """Merge every existing layer into one mapping.

    Args:
        config_dir: Layer directory (default: get_config_dir())
        environment: Environment layer name (default: get_environment())
    """
    config: dict[str, Any] = {}
    layers = config_layers(config_dir or get_config_dir(), environment or get_environment())
    for path in layers:
        config = deep_merge(config, load_toml(path))
    return config
