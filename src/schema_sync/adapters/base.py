"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the reconciler and the
database-level operations talk to.  All methods are ``async def``.

Usage:
    from schema_sync.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        await client.ping()
        rows = await client.query("SHOW TABLES")
        await client.execute("DROP TABLE IF EXISTS `old_orders`")
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Single-connection client interface.

    One client holds one server connection for its whole lifetime, so
    session settings (``SET FOREIGN_KEY_CHECKS``) apply to every
    statement issued through it.
    """

    async def ping(self) -> bool:
        """Check connectivity.

        Returns:
            ``True`` if the server answered.

        Raises:
            Exception: Driver error if the server cannot be reached.
        """
        ...

    async def query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a statement and return its rows.

        Args:
            sql: SQL text.  With *params*, named placeholders use the
                ``:name`` form.
            params: Optional dict of bound parameters.

        Returns:
            List of dicts, one per row.  Empty list for statements that
            return no rows.

        Example:
            rows = await client.query(
                "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA "
                "WHERE SCHEMA_NAME = :name",
                {"name": "shop"},
            )
        """
        ...

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement without reading rows (DDL, SET, ...).

        Without *params* the text is sent to the driver untouched, so
        literal ``%`` and ``:`` inside DDL are safe.

        Example:
            await client.execute("SET FOREIGN_KEY_CHECKS = 0")
        """
        ...

    async def close(self) -> None:
        """Close the connection gracefully."""
        ...
