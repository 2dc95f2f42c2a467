"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from schema_sync.config import load_sync_config, ConnectionConfig, DatabaseProfile
"""

from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import (
    ConnectionConfig,
    DatabaseProfile,
    SyncConfig,
    SyncSettings,
    TableErrorPolicy,
)

__all__ = [
    "load_sync_config",
    "ConnectionConfig",
    "DatabaseProfile",
    "SyncConfig",
    "SyncSettings",
    "TableErrorPolicy",
]
