"""MySQL schema introspection via SHOW and information_schema.

This module queries the live database to extract schema information:
- Base tables (the inventory the reconciler prunes against)
- Columns, data types, nullability, defaults, extra flags
- Foreign key constraints with their delete/update rules

The introspector runs on a caller-supplied ``DatabaseClient`` so it shares
the reconciler's single connection and session settings.
"""

from schema_sync.adapters.base import DatabaseClient
from schema_sync.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    TableSchema,
)


class SchemaIntrospector:
    """Introspects the database selected on the client's connection.

    Usage:
        introspector = SchemaIntrospector(client)

        # Live table inventory
        tables = await introspector.get_tables()

        # Full schema (tables, columns, foreign keys)
        schema = await introspector.introspect()

        # Just column names for verification
        columns = await introspector.get_column_names()
    """

    def __init__(
        self,
        client: DatabaseClient,
        excluded_tables: set[str] | None = None,
    ) -> None:
        """Initialize with a connected client.

        Args:
            client: Client whose session has a database selected.
            excluded_tables: Table names to leave out of every result.
        """
        self._client = client
        self._excluded: frozenset[str] = frozenset(excluded_tables or ())

    async def test_connection(self) -> bool:
        """Ping the server through the client."""
        return await self._client.ping()

    async def get_tables(self) -> list[str]:
        """Get base table names in ``SHOW TABLES`` order (views excluded)."""
        rows = await self._client.query("SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
        tables: list[str] = []
        for row in rows:
            # First column is "Tables_in_<database>"
            name = next(iter(row.values()))
            if name not in self._excluded:
                tables.append(name)
        return tables

    async def get_column_names(self) -> dict[str, set[str]]:
        """Get column names for all tables (lightweight, for verification).

        Returns:
            Dict mapping table name to set of column names.  Tables with
            no rows in ``information_schema.COLUMNS`` are omitted.
        """
        rows = await self._client.query(
            """
            SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
            ORDER BY TABLE_NAME, ORDINAL_POSITION
            """
        )
        result: dict[str, set[str]] = {}
        for row in rows:
            table_name = row["table_name"]
            if table_name in self._excluded:
                continue
            result.setdefault(table_name, set()).add(row["column_name"])
        return result

    async def get_columns(self, table_name: str) -> dict[str, ColumnSchema]:
        """Get columns for one table in ordinal order."""
        rows = await self._client.query(
            """
            SELECT
                COLUMN_NAME AS column_name,
                DATA_TYPE AS data_type,
                COLUMN_TYPE AS column_type,
                IS_NULLABLE AS is_nullable,
                COLUMN_DEFAULT AS column_default,
                EXTRA AS extra
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table_name
            ORDER BY ORDINAL_POSITION
            """,
            {"table_name": table_name},
        )
        columns: dict[str, ColumnSchema] = {}
        for row in rows:
            name = row["column_name"]
            columns[name] = ColumnSchema(
                name=name,
                data_type=str(row["data_type"]).lower(),
                column_type=str(row["column_type"] or ""),
                is_nullable=(row["is_nullable"] == "YES"),
                default=row["column_default"],
                extra=str(row["extra"] or ""),
            )
        return columns

    async def get_foreign_keys(self) -> list[ForeignKeySchema]:
        """Get every foreign key constraint in the current database."""
        rows = await self._client.query(
            """
            SELECT
                kcu.CONSTRAINT_NAME AS name,
                kcu.TABLE_NAME AS table_name,
                kcu.COLUMN_NAME AS column_name,
                kcu.REFERENCED_TABLE_NAME AS references_table,
                kcu.REFERENCED_COLUMN_NAME AS references_column,
                rc.DELETE_RULE AS on_delete,
                rc.UPDATE_RULE AS on_update
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
                ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                AND rc.TABLE_NAME = kcu.TABLE_NAME
            WHERE kcu.TABLE_SCHEMA = DATABASE()
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.TABLE_NAME, kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
            """
        )
        return [
            ForeignKeySchema(
                name=row["name"],
                table=row["table_name"],
                column=row["column_name"],
                references_table=row["references_table"],
                references_column=row["references_column"],
                on_delete=row["on_delete"],
                on_update=row["on_update"],
            )
            for row in rows
            if row["table_name"] not in self._excluded
        ]

    async def introspect(self) -> DatabaseSchema:
        """Introspect tables, columns and foreign keys."""
        db_schema = DatabaseSchema()

        for table_name in await self.get_tables():
            db_schema.tables[table_name] = TableSchema(
                name=table_name,
                columns=await self.get_columns(table_name),
            )

        for fk in await self.get_foreign_keys():
            table = db_schema.tables.get(fk.table)
            if table is not None:
                table.foreign_keys[fk.name] = fk

        return db_schema
