"""TOML configuration loader for connection profiles.

Example schema_sync.toml:

    [profiles.local]
    host = "127.0.0.1"
    port = 3306
    user = "root"
    password_env = "MYSQL_PASSWORD"
    database = "shop"
    description = "Local MySQL 8"

    [sync]
    table_error_policy = "continue"
    debounce_seconds = 1.0
"""

import tomllib
from pathlib import Path

from schema_sync.config.models import DatabaseProfile, SyncConfig, SyncSettings

DEFAULT_CONFIG_FILE = "schema_sync.toml"


def load_sync_config(config_path: Path | None = None) -> SyncConfig:
    """Load connection profiles and sync settings from a TOML file.

    Args:
        config_path: Path to the TOML file.  Defaults to
            ``schema_sync.toml`` in the current working directory.

    Returns:
        SyncConfig with all profiles.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the file is not valid TOML.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Sync config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with at least one [profiles.<name>] table."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path.name}: {e}") from e

    profiles = {
        name: DatabaseProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    return SyncConfig(
        profiles=profiles,
        sync=SyncSettings(**data.get("sync", {})),
    )
