"""Schema document models, DDL generation, introspection, and reconciliation.

Provides identifier sanitization (``sanitize_identifier``), DDL generation
(``create_table_sql``), live database introspection
(``SchemaIntrospector``), comparison (``plan_tables``, ``validate_document``),
and the reconciler (``build_sync_plan``, ``apply_sync_plan``,
``sync_schema``).

Usage:
    from schema_sync.schema import SchemaDocument, sync_schema
    from schema_sync.schema import create_table_sql, sanitize_identifier
    from schema_sync.schema import SchemaIntrospector, validate_schema
"""

from schema_sync.schema.comparator import (
    TableDiff,
    expected_columns,
    plan_tables,
    validate_document,
    validate_schema,
)
from schema_sync.schema.ddl import (
    add_foreign_key_sql,
    column_definition,
    create_table_sql,
    drop_table_sql,
    foreign_key_name,
)
from schema_sync.schema.introspector import SchemaIntrospector
from schema_sync.schema.models import (
    Column,
    ColumnDiff,
    ColumnSchema,
    ConnectionResult,
    DatabaseSchema,
    ForeignKeySchema,
    OperationKind,
    ReferentialAction,
    Relationship,
    SchemaDocument,
    SchemaValidationResult,
    SyncOperation,
    SyncPhase,
    SyncReport,
    Table,
    TableSchema,
)
from schema_sync.schema.reconciler import (
    RelationshipStep,
    SyncPlan,
    TableStep,
    apply_sync_plan,
    build_sync_plan,
    preview_sync,
    sync_schema,
)
from schema_sync.schema.sanitize import quote_identifier, sanitize_identifier

__all__ = [
    # Document
    "SchemaDocument",
    "Table",
    "Column",
    "Relationship",
    "ReferentialAction",
    # Sanitizer / DDL
    "sanitize_identifier",
    "quote_identifier",
    "column_definition",
    "create_table_sql",
    "drop_table_sql",
    "foreign_key_name",
    "add_foreign_key_sql",
    # Introspection / comparison
    "SchemaIntrospector",
    "ColumnSchema",
    "ForeignKeySchema",
    "TableSchema",
    "DatabaseSchema",
    "TableDiff",
    "plan_tables",
    "expected_columns",
    "validate_schema",
    "validate_document",
    "ColumnDiff",
    "SchemaValidationResult",
    "ConnectionResult",
    # Reconciler
    "SyncPlan",
    "TableStep",
    "RelationshipStep",
    "build_sync_plan",
    "apply_sync_plan",
    "sync_schema",
    "preview_sync",
    "SyncReport",
    "SyncOperation",
    "SyncPhase",
    "OperationKind",
]
