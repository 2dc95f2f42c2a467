"""MySQL DDL generation from schema document models.

Turns one ``Table`` into a self-contained ``CREATE TABLE IF NOT EXISTS``
statement and builds the DROP / ALTER ... FOREIGN KEY statements used by
the reconciler.  Pure text -- no I/O, no database connections.

Usage:
    from schema_sync.schema.ddl import create_table_sql
    from schema_sync.schema.models import Column, Table

    table = Table(id="t1", name="users", columns=[
        Column(id="c1", name="id", type="INT", isPrimaryKey=True,
               isNullable=False, isAutoIncrement=True),
    ])
    print(create_table_sql(table))
"""

from schema_sync.schema.models import Column, ReferentialAction, Table
from schema_sync.schema.sanitize import quote_identifier, sanitize_identifier

TABLE_OPTIONS = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"

PLACEHOLDER_COLUMN = "_placeholder"

# Defaults emitted as SQL keywords instead of string literals
_KEYWORD_DEFAULTS = {
    "NULL": "DEFAULT NULL",
    "CURRENT_TIMESTAMP": "DEFAULT CURRENT_TIMESTAMP",
    # DATE columns only accept CURRENT_DATE as an expression default
    "CURRENT_DATE": "DEFAULT (CURRENT_DATE)",
}


def quote_literal(value: str) -> str:
    """Single-quote *value* with embedded quotes doubled.

    Examples:
        >>> quote_literal("O'Brien")
        "'O''Brien'"
    """
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def supports_auto_increment(type_expression: str) -> bool:
    """True if the type expression names an integer type (contains ``INT``)."""
    return "INT" in type_expression.upper()


def default_clause(column: Column) -> str | None:
    """Build the DEFAULT clause for *column*, or None when none applies.

    No clause is emitted for an empty default or for auto-increment
    columns.
    """
    if not column.default_value or column.is_auto_increment:
        return None

    keyword = _KEYWORD_DEFAULTS.get(column.default_value.strip().upper())
    if keyword is not None:
        return keyword
    return f"DEFAULT {quote_literal(column.default_value)}"


def column_definition(column: Column) -> str:
    """Build the inline definition for one column.

    Order: name, type, ``NOT NULL``, ``AUTO_INCREMENT``, ``DEFAULT``,
    ``UNIQUE``.  ``AUTO_INCREMENT`` is dropped silently for non-integer
    types; ``UNIQUE`` is omitted for primary keys.

    Example:
        >>> column_definition(Column(id="c", name="qty", type="INT",
        ...                          isNullable=False, defaultValue="1"))
        "`qty` INT NOT NULL DEFAULT '1'"
    """
    parts = [quote_identifier(column.name), column.type]

    if not column.is_nullable:
        parts.append("NOT NULL")

    if column.is_auto_increment and supports_auto_increment(column.type):
        parts.append("AUTO_INCREMENT")

    default = default_clause(column)
    if default is not None:
        parts.append(default)

    if column.is_unique and not column.is_primary_key:
        parts.append("UNIQUE")

    return " ".join(parts)


def check_constraint_name(table_name: str, column_name: str) -> str:
    """Deterministic CHECK constraint name ``chk_<table>_<column>``."""
    return f"chk_{sanitize_identifier(table_name)}_{sanitize_identifier(column_name)}"


def create_table_sql(table: Table) -> str:
    """Generate ``CREATE TABLE IF NOT EXISTS`` for *table*.

    A table with no columns gets a single placeholder INT column, since
    MySQL rejects tables without columns.  Primary-key columns are
    collected into one table-level ``PRIMARY KEY`` constraint (composite
    when several columns are marked), followed by one named CHECK
    constraint per column that declares an expression.

    Generation is deterministic: the same table always yields the same
    text.
    """
    table_ident = quote_identifier(table.name)

    if not table.columns:
        return (
            f"CREATE TABLE IF NOT EXISTS {table_ident} (\n"
            f"  `{PLACEHOLDER_COLUMN}` INT COMMENT "
            f"'Placeholder column - add columns to replace'\n"
            f") {TABLE_OPTIONS};"
        )

    definitions = [column_definition(col) for col in table.columns]
    constraints: list[str] = []

    pk_columns = [quote_identifier(col.name) for col in table.columns if col.is_primary_key]
    if pk_columns:
        constraints.append(f"PRIMARY KEY ({', '.join(pk_columns)})")

    for col in table.columns:
        if col.check_constraint:
            name = check_constraint_name(table.name, col.name)
            constraints.append(f"CONSTRAINT `{name}` CHECK ({col.check_constraint})")

    body = ",\n  ".join(definitions + constraints)
    return f"CREATE TABLE IF NOT EXISTS {table_ident} (\n  {body}\n) {TABLE_OPTIONS};"


def drop_table_sql(table_name: str) -> str:
    """Generate ``DROP TABLE IF EXISTS`` for a (sanitized) table name."""
    return f"DROP TABLE IF EXISTS {quote_identifier(table_name)}"


def foreign_key_name(source_table: str, source_column: str) -> str:
    """Base foreign key constraint name ``fk_<table>_<column>``.

    Not unique when one column carries several relationships; the
    reconciler disambiguates collisions within a pass.
    """
    return f"fk_{sanitize_identifier(source_table)}_{sanitize_identifier(source_column)}"


def add_foreign_key_sql(
    constraint_name: str,
    source_table: str,
    source_column: str,
    target_table: str,
    target_column: str,
    on_delete: ReferentialAction = ReferentialAction.CASCADE,
    on_update: ReferentialAction = ReferentialAction.CASCADE,
) -> str:
    """Generate ``ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY``.

    Example:
        >>> add_foreign_key_sql("fk_posts_user_id", "posts", "user_id", "users", "id")
        'ALTER TABLE `posts` ADD CONSTRAINT `fk_posts_user_id` FOREIGN KEY (`user_id`) REFERENCES `users` (`id`) ON DELETE CASCADE ON UPDATE CASCADE'
    """
    return (
        f"ALTER TABLE {quote_identifier(source_table)} "
        f"ADD CONSTRAINT {quote_identifier(constraint_name)} "
        f"FOREIGN KEY ({quote_identifier(source_column)}) "
        f"REFERENCES {quote_identifier(target_table)} ({quote_identifier(target_column)}) "
        f"ON DELETE {ReferentialAction(on_delete).value} "
        f"ON UPDATE {ReferentialAction(on_update).value}"
    )
