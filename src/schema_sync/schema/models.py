"""Pydantic models for the schema document, live introspection and results.

This module contains schema-domain models:
- Document models: Column, Position, Table, Relationship, SchemaDocument
  (the declarative design produced by the canvas, camelCase on the wire)
- Introspection models: ColumnSchema, ForeignKeySchema, TableSchema,
  DatabaseSchema (what the live MySQL database actually contains)
- Validation models: ColumnDiff, SchemaValidationResult
- Result models: SyncOperation, SyncReport, ConnectionResult, OperationResult,
  DatabaseListResult, AutoIncrementResult

Connection settings (ConnectionConfig, DatabaseProfile) live in
schema_sync.config.models.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from schema_sync.schema.sanitize import sanitize_identifier


# ============================================================================
# Schema Document Models
# ============================================================================


class _DocumentModel(BaseModel):
    """Base for document models: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ReferentialAction(str, Enum):
    """Foreign key ON DELETE / ON UPDATE action."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


class Column(_DocumentModel):
    """One field of a table.

    ``type`` is a free-form SQL type expression (``VARCHAR(255)``,
    ``DECIMAL(10,2)``); it is not validated against a closed set.

    Example:
        >>> col = Column(id="c1", name="email", type="VARCHAR(255)", isUnique=True)
        >>> col.is_nullable
        True
    """

    id: str
    name: str
    type: str
    is_primary_key: bool = False
    is_nullable: bool = True
    is_unique: bool = False
    is_auto_increment: bool = False
    default_value: str | None = None
    check_constraint: str | None = None


class Position(_DocumentModel):
    """Canvas coordinates. UI metadata only, ignored by sync."""

    x: float = 0
    y: float = 0


class Table(_DocumentModel):
    """A table on the canvas. Column order sets DDL column order."""

    id: str
    name: str
    position: Position = Field(default_factory=Position)
    columns: list[Column] = Field(default_factory=list)

    @property
    def safe_name(self) -> str:
        return sanitize_identifier(self.name)

    def find_column(self, column_id: str) -> Column | None:
        """Return the column with *column_id*, or None."""
        for column in self.columns:
            if column.id == column_id:
                return column
        return None


class Relationship(_DocumentModel):
    """A foreign key from source table/column to target table/column."""

    id: str
    source_table_id: str
    source_column_id: str
    target_table_id: str
    target_column_id: str
    on_delete: ReferentialAction = ReferentialAction.CASCADE
    on_update: ReferentialAction = ReferentialAction.CASCADE

    @field_validator("on_delete", "on_update", mode="before")
    @classmethod
    def _normalize_action(cls, value: Any) -> Any:
        # Canvas sends "cascade", "set null", "" or nothing at all
        if value is None:
            return ReferentialAction.CASCADE
        if isinstance(value, str):
            normalized = " ".join(value.split()).upper()
            return normalized or ReferentialAction.CASCADE
        return value


class SchemaDocument(_DocumentModel):
    """The unit handed to the reconciler: ordered tables plus relationships.

    Treated as an immutable snapshot for one reconciliation pass.  The
    ``without_*`` helpers return new documents for callers that own the
    authoritative copy.

    Example:
        >>> doc = SchemaDocument.from_json('{"tables": [], "relationships": []}')
        >>> doc.table_names()
        []
    """

    tables: list[Table] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)

    @classmethod
    def from_json(cls, data: str | bytes | dict[str, Any]) -> "SchemaDocument":
        """Parse the stored ``schemaData`` blob (JSON text or decoded dict)."""
        if isinstance(data, dict):
            return cls.model_validate(data)
        return cls.model_validate(json.loads(data))

    def find_table(self, table_id: str) -> Table | None:
        """Return the table with *table_id*, or None."""
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def table_names(self) -> list[str]:
        """Sanitized table names in document order."""
        return [table.safe_name for table in self.tables]

    def without_table(self, table_id: str) -> "SchemaDocument":
        """Copy of the document with the table and its relationships removed."""
        return SchemaDocument(
            tables=[t for t in self.tables if t.id != table_id],
            relationships=[
                r
                for r in self.relationships
                if r.source_table_id != table_id and r.target_table_id != table_id
            ],
        )

    def without_column(self, table_id: str, column_id: str) -> "SchemaDocument":
        """Copy of the document with one column and its relationships removed."""
        tables: list[Table] = []
        for table in self.tables:
            if table.id == table_id:
                table = table.model_copy(
                    update={"columns": [c for c in table.columns if c.id != column_id]}
                )
            tables.append(table)

        def _references(rel: Relationship) -> bool:
            return (
                rel.source_table_id == table_id and rel.source_column_id == column_id
            ) or (
                rel.target_table_id == table_id and rel.target_column_id == column_id
            )

        return SchemaDocument(
            tables=tables,
            relationships=[r for r in self.relationships if not _references(r)],
        )


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a live MySQL column.

    Example:
        >>> col = ColumnSchema(name="id", data_type="int", column_type="int")
        >>> col.is_nullable
        True
    """

    name: str
    data_type: str
    column_type: str = ""
    is_nullable: bool = True
    default: str | None = None
    extra: str = ""  # e.g. auto_increment


class ForeignKeySchema(BaseModel):
    """Schema for a live foreign key constraint."""

    name: str
    table: str
    column: str
    references_table: str
    references_column: str
    on_delete: str | None = None
    on_update: str | None = None


class TableSchema(BaseModel):
    """Schema for a live table."""

    name: str
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)
    foreign_keys: dict[str, ForeignKeySchema] = Field(default_factory=dict)


class DatabaseSchema(BaseModel):
    """Complete live database schema."""

    tables: dict[str, TableSchema] = Field(default_factory=dict)


# ============================================================================
# Validation Result Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A missing column detected during verification."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of comparing the live database against a document.

    Example:
        >>> result = SchemaValidationResult(valid=True)
        >>> result.error_count
        0
        >>> result.format_report()
        'Schema matches document'
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Count of missing tables plus missing columns."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format verification result as human-readable report."""
        if self.valid and not self.extra_tables:
            return "Schema matches document"

        lines = ["Schema matches document" if self.valid else "Schema drift detected:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        if self.extra_tables:
            lines.append(f"\n  Extra tables: {', '.join(self.extra_tables)}")

        return "\n".join(lines)


# ============================================================================
# Operation Results
# ============================================================================


class SyncPhase(str, Enum):
    """Phases of a reconciliation pass, in execution order."""

    CONNECT = "connect"
    DISABLE_CHECKS = "disable_checks"
    INVENTORY = "inventory"
    PRUNE = "prune"
    MATERIALIZE = "materialize"
    WIRE_RELATIONSHIPS = "wire_relationships"
    ENABLE_CHECKS = "enable_checks"


class OperationKind(str, Enum):
    """Kind of DDL step recorded in a sync report."""

    DROP = "drop"
    RECREATE = "recreate"
    CREATE = "create"
    FOREIGN_KEY = "foreign_key"


class SyncOperation(BaseModel):
    """Outcome of one DDL step."""

    kind: OperationKind
    target: str
    success: bool = True
    error: str | None = None


class SyncReport(BaseModel):
    """Result of one reconciliation pass.

    ``details`` is the ordered human-readable log surfaced to users;
    ``operations`` carries the same steps with machine-readable status.
    Dangling relationships are not failures: their ids are listed in
    ``skipped_relationships`` so callers can detect them.

    Example:
        >>> report = SyncReport(success=True, message="Synced 0 tables to MySQL")
        >>> report.failed_count
        0
    """

    success: bool
    message: str
    details: list[str] = Field(default_factory=list)
    operations: list[SyncOperation] = Field(default_factory=list)
    skipped_relationships: list[str] = Field(default_factory=list)
    failed_phase: SyncPhase | None = None

    @property
    def skipped_count(self) -> int:
        """Number of relationships skipped because an endpoint was dangling."""
        return len(self.skipped_relationships)

    @property
    def failures(self) -> list[SyncOperation]:
        """Operations that failed, in execution order."""
        return [op for op in self.operations if not op.success]

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_response(self) -> dict[str, Any]:
        """Plain ``{success, message, details}`` dict for the project layer."""
        return {"success": self.success, "message": self.message, "details": list(self.details)}


class ConnectionResult(BaseModel):
    """Result of connecting to a profile (and optionally validating it)."""

    success: bool
    profile_name: str | None = None
    schema_valid: bool | None = None
    schema_report: SchemaValidationResult | None = None
    error: str | None = None


class OperationResult(BaseModel):
    """Result of a database-level operation (connection test, create database)."""

    success: bool
    message: str


class DatabaseListResult(BaseModel):
    """Result of listing databases on a server."""

    success: bool
    databases: list[str] = Field(default_factory=list)
    message: str | None = None


class AutoIncrementResult(BaseModel):
    """Result of resetting a table's AUTO_INCREMENT counter."""

    success: bool
    message: str
    table: str | None = None
    next_id: int | None = None
