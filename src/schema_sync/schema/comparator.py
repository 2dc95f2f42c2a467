"""Schema comparison using set operations.

Compares the live table inventory (or live columns) against a schema
document.  Pure logic -- no I/O, no database connections.

Usage:
    from schema_sync.schema.comparator import plan_tables, validate_document
    from schema_sync.schema.introspector import SchemaIntrospector

    introspector = SchemaIntrospector(client)
    diff = plan_tables(await introspector.get_tables(), document)
    print(diff.to_drop, diff.to_recreate, diff.to_create)

    result = validate_document(await introspector.get_column_names(), document)
    print(result.format_report())
"""

from dataclasses import dataclass, field

from schema_sync.schema.ddl import PLACEHOLDER_COLUMN
from schema_sync.schema.models import ColumnDiff, SchemaDocument, SchemaValidationResult
from schema_sync.schema.sanitize import sanitize_identifier


@dataclass
class TableDiff:
    """Table-level difference between live inventory ``L`` and document ``D``.

    Attributes:
        to_drop: ``L \\ D`` in inventory order (pruned unconditionally).
        to_recreate: ``D ∩ L`` in document order (dropped, then created).
        to_create: ``D \\ L`` in document order.
    """

    to_drop: list[str] = field(default_factory=list)
    to_recreate: list[str] = field(default_factory=list)
    to_create: list[str] = field(default_factory=list)


def plan_tables(live_tables: list[str], document: SchemaDocument) -> TableDiff:
    """Split tables into drop / recreate / create sets by sanitized name.

    Args:
        live_tables: Table names currently present in the database.
        document: The schema document being materialized.

    Returns:
        ``TableDiff``.  A document name appears at most once across
        ``to_recreate`` and ``to_create`` even if two document tables
        sanitize to the same name.

    Examples:
        >>> from schema_sync.schema.models import Table
        >>> doc = SchemaDocument(tables=[Table(id="1", name="users"), Table(id="2", name="posts")])
        >>> diff = plan_tables(["users", "legacy"], doc)
        >>> diff.to_drop, diff.to_recreate, diff.to_create
        (['legacy'], ['users'], ['posts'])
    """
    live: set[str] = set(live_tables)
    document_names: list[str] = list(dict.fromkeys(document.table_names()))
    wanted: set[str] = set(document_names)

    return TableDiff(
        to_drop=[name for name in live_tables if name not in wanted],
        to_recreate=[name for name in document_names if name in live],
        to_create=[name for name in document_names if name not in live],
    )


def expected_columns(document: SchemaDocument) -> dict[str, set[str]]:
    """Map each sanitized table name to the column names it should have.

    Zero-column tables expect the placeholder column.
    """
    expected: dict[str, set[str]] = {}
    for table in document.tables:
        names = {sanitize_identifier(col.name) for col in table.columns}
        expected[table.safe_name] = names or {PLACEHOLDER_COLUMN}
    return expected


def validate_schema(
    actual_columns: dict[str, set[str]],
    wanted_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Check that every wanted table exists live with at least its wanted columns.

    Tables are walked in name order.  A wanted table with no live
    counterpart is reported once as missing and its columns are not listed;
    a live table that nothing wants is reported as extra without making
    the result invalid.

    Args:
        actual_columns: Live table name to column names, as returned by
            ``SchemaIntrospector.get_column_names()``.
        wanted_columns: Table name to the column names it must carry.
            ``validate_document()`` derives this from a schema document.

    Examples:
        >>> validate_schema({"users": {"id"}}, {"users": {"id", "email"}}).missing_columns[0].column
        'email'
        >>> validate_schema({"users": {"id"}}, {}).valid
        True
    """
    result = SchemaValidationResult(valid=True)
    for table_name, wanted in sorted(wanted_columns.items()):
        live = actual_columns.get(table_name)
        if live is None:
            result.missing_tables.append(table_name)
            continue
        result.missing_columns.extend(
            ColumnDiff(
                table=table_name,
                column=col_name,
                message=f"Column '{col_name}' missing from table '{table_name}'",
            )
            for col_name in sorted(wanted.difference(live))
        )

    result.extra_tables = sorted(name for name in actual_columns if name not in wanted_columns)
    result.valid = not result.missing_tables and not result.missing_columns
    return result


def validate_document(
    actual_columns: dict[str, set[str]],
    document: SchemaDocument,
) -> SchemaValidationResult:
    """Check a synced database against the document it was synced from.

    Tables are matched by sanitized name and zero-column tables are
    expected to carry the placeholder column, mirroring what
    ``create_table_sql()`` emits.
    """
    return validate_schema(actual_columns, expected_columns(document))
