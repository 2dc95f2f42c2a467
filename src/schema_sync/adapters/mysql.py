"""Async MySQL connection adapter.

Provides ``AsyncMySQLAdapter``, an implementation of the
``DatabaseClient`` protocol using SQLAlchemy's async engine with the
``aiomysql`` driver.  Each adapter holds exactly one connection, opened
lazily on first use (or on ``async with`` entry) and released by
``close()``.

Usage:
    from schema_sync.adapters.mysql import AsyncMySQLAdapter
    from schema_sync.config.models import ConnectionConfig

    config = ConnectionConfig(host="localhost", user="root", password="secret")

    async with AsyncMySQLAdapter(config, database="shop") as client:
        rows = await client.query("SHOW TABLES")
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from schema_sync.config.models import ConnectionConfig

logger = logging.getLogger(__name__)

DRIVER_NAME = "mysql+aiomysql"


def build_mysql_url(config: ConnectionConfig, database: str | None = None) -> URL:
    """Build a SQLAlchemy URL for *config*.

    ``URL.create`` escapes credentials, so passwords containing ``@`` or
    ``/`` need no manual quoting.

    Example:
        >>> url = build_mysql_url(ConnectionConfig(host="db", user="app", password="p@ss"))
        >>> url.render_as_string(hide_password=True)
        'mysql+aiomysql://app:***@db:3306'
    """
    return URL.create(
        DRIVER_NAME,
        username=config.user,
        password=config.password or None,
        host=config.host,
        port=config.port,
        database=database or None,
    )


def create_mysql_engine(
    config: ConnectionConfig,
    database: str | None = None,
    **kwargs: Any,
) -> AsyncEngine:
    """Create an async engine for a single long-lived connection.

    Default settings:

    - ``poolclass=NullPool``: the connection is closed on release, no
      pooling between passes.
    - ``isolation_level="AUTOCOMMIT"``: MySQL auto-commits DDL anyway;
      this keeps row statements consistent with it.
    - ``connect_args={"connect_timeout": 10}``: fail fast on unreachable
      hosts instead of hanging the pass.

    Args:
        config: Server credentials.
        database: Optional default database for the session.
        **kwargs: Forwarded to ``create_async_engine`` (override defaults).
    """
    defaults: dict[str, Any] = {
        "poolclass": NullPool,
        "isolation_level": "AUTOCOMMIT",
        "connect_args": {"connect_timeout": 10},
        "echo": False,
    }
    merged = {**defaults, **kwargs}
    return create_async_engine(build_mysql_url(config, database), **merged)


class AsyncMySQLAdapter:
    """Async MySQL implementation of the ``DatabaseClient`` protocol.

    Args:
        config: Server credentials (host, port, user, password).
        database: Optional database to select for the session.
        **engine_kwargs: Forwarded to ``create_mysql_engine``.

    Example:
        adapter = AsyncMySQLAdapter(config, database="shop")
        await adapter.execute("SET FOREIGN_KEY_CHECKS = 0")
        tables = await adapter.query("SHOW TABLES")
        await adapter.close()
    """

    def __init__(
        self,
        config: ConnectionConfig,
        database: str | None = None,
        **engine_kwargs: Any,
    ) -> None:
        self._config = config
        self._database = database
        self._engine: AsyncEngine = create_mysql_engine(config, database, **engine_kwargs)
        self._conn: AsyncConnection | None = None

    @property
    def database(self) -> str | None:
        return self._database

    async def __aenter__(self) -> "AsyncMySQLAdapter":
        """Open the connection eagerly so connect errors surface here."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> AsyncConnection:
        """Open the underlying connection if it is not open yet."""
        if self._conn is None:
            url = self._engine.url.render_as_string(hide_password=True)
            logger.debug(f"Opening MySQL connection to {url}")
            self._conn = await self._engine.connect()
        return self._conn

    # ------------------------------------------------------------------
    # DatabaseClient Methods
    # ------------------------------------------------------------------

    async def ping(self) -> bool:
        """Run ``SELECT 1`` to verify the connection is alive."""
        conn = await self.connect()
        result = await conn.execute(text("SELECT 1"))
        return result.scalar() == 1

    async def query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run *sql* and return rows as dicts."""
        conn = await self.connect()
        if params:
            result = await conn.execute(text(sql), params)
        else:
            result = await conn.exec_driver_sql(
                sql, execution_options={"no_parameters": True}
            )
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings().all()]

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute *sql*, discarding any rows."""
        conn = await self.connect()
        logger.debug(f"Executing: {sql}")
        if params:
            await conn.execute(text(sql), params)
        else:
            await conn.exec_driver_sql(sql, execution_options={"no_parameters": True})

    async def close(self) -> None:
        """Close the connection and dispose of the engine."""
        if self._conn is not None:
            try:
                await self._conn.close()
            finally:
                self._conn = None
        await self._engine.dispose()
