"""Pydantic models for connection profiles and sync settings."""

import os
from enum import Enum

from pydantic import BaseModel, Field


# ============================================================================
# Connection Models
# ============================================================================


class ConnectionConfig(BaseModel):
    """Credentials for one MySQL server.

    Example:
        >>> cfg = ConnectionConfig(host="localhost", user="root")
        >>> cfg.port
        3306
    """

    host: str = Field(min_length=1)
    port: int = Field(default=3306, ge=1, le=65535)
    user: str = Field(min_length=1)
    password: str = ""


class DatabaseProfile(ConnectionConfig):
    """Named connection profile from schema_sync.toml."""

    database: str | None = None
    description: str = ""
    password_env: str | None = None  # env var that overrides ``password``

    def connection_config(self) -> ConnectionConfig:
        """Resolve the profile to plain credentials.

        When ``password_env`` names a set environment variable, its value
        replaces the stored password.
        """
        password = self.password
        if self.password_env:
            password = os.environ.get(self.password_env, password)
        return ConnectionConfig(
            host=self.host,
            port=self.port,
            user=self.user,
            password=password,
        )


# ============================================================================
# Sync Settings
# ============================================================================


class TableErrorPolicy(str, Enum):
    """What the reconciler does when one table fails to materialize.

    ``continue`` records the failure and moves on to the next table;
    ``abort`` stops the pass at the first failing table.
    """

    CONTINUE = "continue"
    ABORT = "abort"


class SyncSettings(BaseModel):
    """The ``[sync]`` table of schema_sync.toml."""

    table_error_policy: TableErrorPolicy = TableErrorPolicy.CONTINUE
    debounce_seconds: float = Field(default=1.0, ge=0)


class SyncConfig(BaseModel):
    """Complete configuration from schema_sync.toml."""

    profiles: dict[str, DatabaseProfile]
    sync: SyncSettings = Field(default_factory=SyncSettings)
