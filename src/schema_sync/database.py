"""Server-level operations: connection test, database creation and upkeep.

Each function opens its own connection, runs, and closes it.  None of them
raise: driver errors come back as a result with ``success=False`` and the
driver message verbatim.

Usage:
    from schema_sync.database import create_database, test_connection

    result = await test_connection(config)
    if result.success:
        result = await create_database(config, "shop")
    print(result.message)
"""

import logging
from collections.abc import Callable

from schema_sync.adapters.base import DatabaseClient
from schema_sync.adapters.mysql import AsyncMySQLAdapter
from schema_sync.config.models import ConnectionConfig
from schema_sync.schema.models import AutoIncrementResult, DatabaseListResult, OperationResult
from schema_sync.schema.sanitize import quote_identifier, sanitize_identifier

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ConnectionConfig, str | None], DatabaseClient]


def _default_client_factory(config: ConnectionConfig, database: str | None) -> DatabaseClient:
    return AsyncMySQLAdapter(config, database=database)


async def _close_client(client: DatabaseClient) -> None:
    try:
        await client.close()
    except Exception as e:
        logger.warning(f"Error closing MySQL connection: {e}")


async def test_connection(
    config: ConnectionConfig,
    client_factory: ClientFactory | None = None,
) -> OperationResult:
    """Open a connection without selecting a database, ping, close."""
    client = (client_factory or _default_client_factory)(config, None)
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Connection test failed for {config.host}:{config.port}: {e}")
        return OperationResult(success=False, message=str(e))
    finally:
        await _close_client(client)
    return OperationResult(success=True, message="Connection successful")


async def create_database(
    config: ConnectionConfig,
    database_name: str,
    client_factory: ClientFactory | None = None,
) -> OperationResult:
    """Create a database, failing if it already exists.

    The name is sanitized first; the existence check binds it as a
    parameter against ``INFORMATION_SCHEMA.SCHEMATA``.

    Example:
        result = await create_database(config, "my-shop")
        result.message
        # "Database 'my_shop' created successfully"
    """
    safe_name = sanitize_identifier(database_name)
    client = (client_factory or _default_client_factory)(config, None)
    try:
        rows = await client.query(
            "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = :name",
            {"name": safe_name},
        )
        if rows:
            return OperationResult(success=False, message=f"Database '{safe_name}' already exists")

        await client.execute(f"CREATE DATABASE {quote_identifier(safe_name)}")
    except Exception as e:
        logger.warning(f"Failed to create database {safe_name}: {e}")
        return OperationResult(success=False, message=str(e))
    finally:
        await _close_client(client)

    logger.info(f"Created database {safe_name}")
    return OperationResult(success=True, message=f"Database '{safe_name}' created successfully")


async def list_databases(
    config: ConnectionConfig,
    client_factory: ClientFactory | None = None,
) -> DatabaseListResult:
    """List databases visible to the configured user (``SHOW DATABASES``)."""
    client = (client_factory or _default_client_factory)(config, None)
    try:
        rows = await client.query("SHOW DATABASES")
    except Exception as e:
        logger.warning(f"Failed to list databases: {e}")
        return DatabaseListResult(success=False, message=str(e))
    finally:
        await _close_client(client)
    return DatabaseListResult(success=True, databases=[row["Database"] for row in rows])


async def reset_auto_increment(
    config: ConnectionConfig,
    database_name: str,
    table_name: str,
    client_factory: ClientFactory | None = None,
) -> AutoIncrementResult:
    """Reset a table's AUTO_INCREMENT counter to ``MAX(col) + 1``.

    The counter is set to 1 when the table is empty.

    Returns:
        ``AutoIncrementResult`` with the sanitized table name and the
        next id, or ``success=False`` when the table has no
        auto-increment column.
    """
    safe_table = sanitize_identifier(table_name)
    table_ident = quote_identifier(safe_table)
    client = (client_factory or _default_client_factory)(config, sanitize_identifier(database_name))
    try:
        columns = await client.query(f"SHOW COLUMNS FROM {table_ident}")
        auto_column = next(
            (col["Field"] for col in columns if "auto_increment" in str(col.get("Extra") or "")),
            None,
        )
        if auto_column is None:
            return AutoIncrementResult(
                success=False,
                message="No AUTO_INCREMENT column found in this table",
                table=safe_table,
            )

        rows = await client.query(
            f"SELECT MAX({quote_identifier(auto_column)}) AS max_id FROM {table_ident}"
        )
        max_id = rows[0]["max_id"] if rows else None
        next_id = int(max_id) + 1 if max_id else 1

        await client.execute(f"ALTER TABLE {table_ident} AUTO_INCREMENT = {next_id}")
    except Exception as e:
        logger.warning(f"Failed to reset AUTO_INCREMENT for {safe_table}: {e}")
        return AutoIncrementResult(success=False, message=str(e), table=safe_table)
    finally:
        await _close_client(client)

    logger.info(f"Reset AUTO_INCREMENT for {safe_table} to {next_id}")
    return AutoIncrementResult(
        success=True,
        message=f"AUTO_INCREMENT reset to {next_id}",
        table=safe_table,
        next_id=next_id,
    )
