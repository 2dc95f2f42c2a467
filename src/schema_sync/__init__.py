"""schema-sync: reconcile a live MySQL database with a declarative schema document.

Provides the schema reconciler, MySQL DDL generation, server-level
operations (connection test, database creation), profile configuration,
a save debouncer, and the ``schema-sync`` CLI.

Usage:
    from schema_sync import sync_schema, SchemaDocument, ConnectionConfig
    from schema_sync import test_connection, create_database
    from schema_sync import get_adapter, load_sync_config
"""

__version__ = "0.1.0"

# Adapters
from schema_sync.adapters.base import DatabaseClient
from schema_sync.adapters.mysql import AsyncMySQLAdapter

# Config
from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import (
    ConnectionConfig,
    DatabaseProfile,
    SyncConfig,
    TableErrorPolicy,
)

# Server-level operations
from schema_sync.database import (
    create_database,
    list_databases,
    reset_auto_increment,
    test_connection,
)

# Debouncer
from schema_sync.debounce import Debouncer

# Factory
from schema_sync.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    resolve_connection,
)

# Schema
from schema_sync.schema.models import (
    Column,
    Relationship,
    SchemaDocument,
    SyncReport,
    Table,
)
from schema_sync.schema.reconciler import build_sync_plan, sync_schema
from schema_sync.schema.sanitize import sanitize_identifier

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncMySQLAdapter",
    # Config
    "load_sync_config",
    "ConnectionConfig",
    "DatabaseProfile",
    "SyncConfig",
    "TableErrorPolicy",
    # Server-level operations
    "test_connection",
    "create_database",
    "list_databases",
    "reset_auto_increment",
    # Debouncer
    "Debouncer",
    # Factory
    "get_adapter",
    "connect_and_validate",
    "resolve_connection",
    "ProfileNotFoundError",
    # Schema
    "SchemaDocument",
    "Table",
    "Column",
    "Relationship",
    "SyncReport",
    "sync_schema",
    "build_sync_plan",
    "sanitize_identifier",
]
