"""Schema reconciler -- make a live MySQL database match a schema document.

One pass runs these phases over a single connection:

1. Connect (failure aborts with no partial report)
2. ``SET FOREIGN_KEY_CHECKS = 0``
3. Inventory the live base tables
4. Prune: drop every live table the document does not name
5. Materialize: drop-and-create every document table, in document order
6. Wire relationships: ``ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY``
7. ``SET FOREIGN_KEY_CHECKS = 1``
8. Disconnect

Tables are always recreated, never altered, so data in every synced table
is lost.  There is no rollback: a failure midway leaves earlier phases
applied and is reported in ``SyncReport.details``.

Usage:
    from schema_sync.schema.reconciler import sync_schema

    report = await sync_schema(config, "shop", document.tables, document.relationships)
    if not report.success:
        print(report.message)
    for line in report.details:
        print(line)
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from schema_sync.adapters.base import DatabaseClient
from schema_sync.adapters.mysql import AsyncMySQLAdapter
from schema_sync.config.models import ConnectionConfig, TableErrorPolicy
from schema_sync.schema.comparator import plan_tables
from schema_sync.schema.ddl import (
    add_foreign_key_sql,
    create_table_sql,
    drop_table_sql,
    foreign_key_name,
)
from schema_sync.schema.introspector import SchemaIntrospector
from schema_sync.schema.models import (
    OperationKind,
    Relationship,
    ReferentialAction,
    SchemaDocument,
    SyncOperation,
    SyncPhase,
    SyncReport,
    Table,
)
from schema_sync.schema.sanitize import sanitize_identifier

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ConnectionConfig, str | None], DatabaseClient]

DISABLE_FK_CHECKS = "SET FOREIGN_KEY_CHECKS = 0"
ENABLE_FK_CHECKS = "SET FOREIGN_KEY_CHECKS = 1"
UNMATERIALIZED_ENDPOINT = "endpoint table was not materialized"


class TableMaterializationError(Exception):
    """A table could not be created while the policy is ``abort``."""

    def __init__(self, table: str, error: str) -> None:
        self.table = table
        self.error = error
        super().__init__(f"Failed to create table {table}: {error}")


# ------------------------------------------------------------------
# Plan data classes
# ------------------------------------------------------------------


@dataclass
class TableStep:
    """One document table to materialize.

    Example:
        step = TableStep(table="users", create_sql="CREATE TABLE ...", column_count=2)
        step.is_recreate
        # False
    """

    table: str
    create_sql: str
    column_count: int
    is_recreate: bool = False  # live table exists and is dropped first
    duplicate_of: str | None = None  # id of an earlier table with the same name


@dataclass
class RelationshipStep:
    """One resolvable relationship, ready to be added as a foreign key."""

    relationship_id: str
    constraint_name: str
    source_table: str
    source_column: str
    target_table: str
    target_column: str
    on_delete: ReferentialAction = ReferentialAction.CASCADE
    on_update: ReferentialAction = ReferentialAction.CASCADE

    @property
    def sql(self) -> str:
        return add_foreign_key_sql(
            self.constraint_name,
            self.source_table,
            self.source_column,
            self.target_table,
            self.target_column,
            on_delete=self.on_delete,
            on_update=self.on_update,
        )

    def describe(self) -> str:
        """``src.col -> tgt.col`` for report lines."""
        return (
            f"{self.source_table}.{self.source_column} -> "
            f"{self.target_table}.{self.target_column}"
        )


@dataclass
class SyncPlan:
    """Everything one pass will execute, computed before any DDL runs.

    Attributes:
        drops: Live tables absent from the document, in inventory order.
        tables: Document tables in document order.
        relationships: Resolvable relationships in document order.
        skipped_relationships: Ids of relationships with a dangling endpoint.
        blocked_relationships: Ids of relationships with an endpoint table
            that is never materialized (a rejected duplicate name).
    """

    drops: list[str] = field(default_factory=list)
    tables: list[TableStep] = field(default_factory=list)
    relationships: list[RelationshipStep] = field(default_factory=list)
    skipped_relationships: list[str] = field(default_factory=list)
    blocked_relationships: list[str] = field(default_factory=list)

    @property
    def recreate_count(self) -> int:
        return sum(1 for step in self.tables if step.is_recreate)

    def statements(self) -> list[str]:
        """All DDL statements in execution order, for previews."""
        sql: list[str] = [drop_table_sql(name) for name in self.drops]
        for step in self.tables:
            if step.duplicate_of is not None:
                continue
            if step.is_recreate:
                sql.append(drop_table_sql(step.table))
            sql.append(step.create_sql)
        sql.extend(step.sql for step in self.relationships)
        return sql


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


def _unique_constraint_name(base: str, target_table: str, used: set[str]) -> str:
    """Disambiguate *base* against names already used in this pass.

    Examples:
        >>> _unique_constraint_name("fk_posts_user_id", "users", set())
        'fk_posts_user_id'
        >>> _unique_constraint_name("fk_posts_user_id", "users", {"fk_posts_user_id"})
        'fk_posts_user_id_users'
        >>> _unique_constraint_name(
        ...     "fk_posts_user_id", "users", {"fk_posts_user_id", "fk_posts_user_id_users"})
        'fk_posts_user_id_2'
    """
    if base not in used:
        return base

    candidate = f"{base}_{target_table}"
    if candidate not in used:
        return candidate

    n = 2
    while f"{base}_{n}" in used:
        n += 1
    return f"{base}_{n}"


def _resolve_relationship(
    document: SchemaDocument,
    rel: Relationship,
) -> tuple[Table, str, Table, str] | None:
    """Resolve both endpoints to (table, column name), or None if dangling."""
    source = document.find_table(rel.source_table_id)
    target = document.find_table(rel.target_table_id)
    if source is None or target is None:
        return None

    source_column = source.find_column(rel.source_column_id)
    target_column = target.find_column(rel.target_column_id)
    if source_column is None or target_column is None:
        return None

    return source, source_column.name, target, target_column.name


def build_sync_plan(document: SchemaDocument, live_tables: list[str]) -> SyncPlan:
    """Compute the DDL for one pass.

    Pure sync logic -- no I/O.  Table names are compared after
    sanitization; every live table not named by the document is dropped.

    Args:
        document: The schema document to materialize.
        live_tables: Base tables currently present, in inventory order.

    Returns:
        ``SyncPlan``.  A document table whose sanitized name repeats an
        earlier one is kept in ``tables`` with ``duplicate_of`` set so the
        apply step can report it.

    Example:
        plan = build_sync_plan(document, await introspector.get_tables())
        for sql in plan.statements():
            print(sql)
    """
    diff = plan_tables(live_tables, document)
    plan = SyncPlan(drops=diff.to_drop)

    live: set[str] = set(live_tables)
    first_by_name: dict[str, str] = {}
    rejected_ids: set[str] = set()

    for table in document.tables:
        name = table.safe_name
        duplicate_of = first_by_name.get(name)
        if duplicate_of is None:
            first_by_name[name] = table.id
        else:
            rejected_ids.add(table.id)

        plan.tables.append(
            TableStep(
                table=name,
                create_sql=create_table_sql(table),
                column_count=len(table.columns),
                is_recreate=duplicate_of is None and name in live,
                duplicate_of=duplicate_of,
            )
        )

    used_names: set[str] = set()
    for rel in document.relationships:
        resolved = _resolve_relationship(document, rel)
        if resolved is None:
            logger.debug(f"Skipping relationship {rel.id}: endpoint not in document")
            plan.skipped_relationships.append(rel.id)
            continue

        if rel.source_table_id in rejected_ids or rel.target_table_id in rejected_ids:
            logger.debug(f"Blocking relationship {rel.id}: endpoint table is a duplicate")
            plan.blocked_relationships.append(rel.id)
            continue

        source, source_column, target, target_column = resolved
        constraint_name = _unique_constraint_name(
            foreign_key_name(source.name, source_column),
            target.safe_name,
            used_names,
        )
        used_names.add(constraint_name)

        plan.relationships.append(
            RelationshipStep(
                relationship_id=rel.id,
                constraint_name=constraint_name,
                source_table=source.safe_name,
                source_column=sanitize_identifier(source_column),
                target_table=target.safe_name,
                target_column=sanitize_identifier(target_column),
                on_delete=rel.on_delete,
                on_update=rel.on_update,
            )
        )

    return plan


# ------------------------------------------------------------------
# Plan application
# ------------------------------------------------------------------


async def _prune(client: DatabaseClient, plan: SyncPlan, report: SyncReport) -> None:
    for name in plan.drops:
        sql = drop_table_sql(name)
        logger.debug(sql)
        await client.execute(sql)
        report.details.append(f"Dropped table: {name}")
        report.operations.append(SyncOperation(kind=OperationKind.DROP, target=name))


async def _materialize_table(
    client: DatabaseClient,
    step: TableStep,
    report: SyncReport,
) -> None:
    """Drop (when live) and create one table; raises on failure."""
    if step.duplicate_of is not None:
        raise ValueError(f"Duplicate table name (same as table id {step.duplicate_of})")

    if step.is_recreate:
        sql = drop_table_sql(step.table)
        logger.debug(sql)
        await client.execute(sql)
        report.details.append(f"Recreating table: {step.table}")
        report.operations.append(SyncOperation(kind=OperationKind.RECREATE, target=step.table))

    logger.debug(step.create_sql)
    await client.execute(step.create_sql)
    report.details.append(f"Created table: {step.table} with {step.column_count} columns")
    report.operations.append(SyncOperation(kind=OperationKind.CREATE, target=step.table))


async def _materialize(
    client: DatabaseClient,
    plan: SyncPlan,
    report: SyncReport,
    table_error_policy: TableErrorPolicy,
) -> int:
    """Materialize every table; returns the number of failed tables."""
    failed = 0
    for step in plan.tables:
        try:
            await _materialize_table(client, step, report)
        except Exception as e:
            failed += 1
            logger.warning(f"Failed to create table {step.table}: {e}")
            report.details.append(f"Failed to create table {step.table}: {e}")
            report.operations.append(
                SyncOperation(
                    kind=OperationKind.CREATE,
                    target=step.table,
                    success=False,
                    error=str(e),
                )
            )
            if table_error_policy == TableErrorPolicy.ABORT:
                raise TableMaterializationError(step.table, str(e)) from e
    return failed


async def _wire_relationships(
    client: DatabaseClient,
    plan: SyncPlan,
    report: SyncReport,
) -> int:
    """Add every foreign key; returns the number that failed."""
    failed = 0
    for step in plan.relationships:
        sql = step.sql
        logger.debug(sql)
        try:
            await client.execute(sql)
        except Exception as e:
            failed += 1
            logger.warning(f"Failed to add foreign key {step.constraint_name}: {e}")
            report.details.append(f"Failed to add foreign key {step.constraint_name}: {e}")
            report.operations.append(
                SyncOperation(
                    kind=OperationKind.FOREIGN_KEY,
                    target=step.constraint_name,
                    success=False,
                    error=str(e),
                )
            )
            continue
        report.details.append(f"Added foreign key: {step.constraint_name} ({step.describe()})")
        report.operations.append(
            SyncOperation(kind=OperationKind.FOREIGN_KEY, target=step.constraint_name)
        )

    for rel_id in plan.blocked_relationships:
        failed += 1
        line = f"Failed to add foreign key for relationship {rel_id}: {UNMATERIALIZED_ENDPOINT}"
        logger.warning(line)
        report.details.append(line)
        report.operations.append(
            SyncOperation(
                kind=OperationKind.FOREIGN_KEY,
                target=rel_id,
                success=False,
                error=UNMATERIALIZED_ENDPOINT,
            )
        )
    return failed


def _summary(plan: SyncPlan, failed_tables: int, failed_keys: int) -> str:
    total = len(plan.tables)
    if failed_tables:
        message = f"Synced {total - failed_tables} of {total} tables to MySQL ({failed_tables} failed)"
    else:
        message = f"Synced {total} tables to MySQL"
    if failed_keys:
        message += f"; {failed_keys} foreign key(s) failed"
    return message


async def apply_sync_plan(
    client: DatabaseClient,
    plan: SyncPlan,
    table_error_policy: TableErrorPolicy = TableErrorPolicy.CONTINUE,
) -> SyncReport:
    """Execute a plan: prune, materialize, then wire relationships.

    Executes DDL through ``client.execute()``.  Foreign key checks must
    already be disabled on the client's session.

    Args:
        client: Connected client.
        plan: Plan from ``build_sync_plan()``.
        table_error_policy: ``CONTINUE`` records a failed table and moves
            on; ``ABORT`` stops the pass at the first failed table.

    Returns:
        ``SyncReport``.  ``success`` is False if a table failed or a
        phase raised; foreign key failures are reported in ``details``
        but leave ``success`` untouched.
    """
    report = SyncReport(
        success=False,
        message="",
        skipped_relationships=list(plan.skipped_relationships),
    )
    phase = SyncPhase.PRUNE

    try:
        logger.info(f"Pruning {len(plan.drops)} table(s)")
        await _prune(client, plan, report)

        phase = SyncPhase.MATERIALIZE
        logger.info(
            f"Materializing {len(plan.tables)} table(s), {plan.recreate_count} recreated"
        )
        failed_tables = await _materialize(client, plan, report, table_error_policy)

        phase = SyncPhase.WIRE_RELATIONSHIPS
        logger.info(
            f"Adding {len(plan.relationships)} foreign key(s), "
            f"{len(plan.skipped_relationships)} skipped, "
            f"{len(plan.blocked_relationships)} blocked"
        )
        failed_keys = await _wire_relationships(client, plan, report)

    except Exception as e:
        logger.error(f"MySQL sync failed during {phase.value}: {e}")
        report.message = f"MySQL sync failed: {e}"
        report.failed_phase = phase
        return report

    report.success = failed_tables == 0
    report.message = _summary(plan, failed_tables, failed_keys)
    if failed_tables:
        report.failed_phase = SyncPhase.MATERIALIZE
    return report


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def _default_client_factory(config: ConnectionConfig, database: str | None) -> DatabaseClient:
    return AsyncMySQLAdapter(config, database=database)


def _as_document(
    tables: Iterable[Table | dict[str, Any]],
    relationships: Iterable[Relationship | dict[str, Any]] | None,
) -> SchemaDocument:
    return SchemaDocument(tables=list(tables), relationships=list(relationships or []))


async def _close_client(client: DatabaseClient) -> None:
    try:
        await client.close()
    except Exception as e:
        logger.warning(f"Error closing MySQL connection: {e}")


async def sync_schema(
    config: ConnectionConfig,
    database_name: str,
    tables: Iterable[Table | dict[str, Any]],
    relationships: Iterable[Relationship | dict[str, Any]] | None = None,
    *,
    table_error_policy: TableErrorPolicy = TableErrorPolicy.CONTINUE,
    client_factory: ClientFactory | None = None,
) -> SyncReport:
    """Reconcile *database_name* with the given tables and relationships.

    Never raises: connection, driver and document errors come back as a
    ``SyncReport`` with ``success=False`` and the error message verbatim.

    Args:
        config: Server credentials.
        database_name: Target database (sanitized before use).
        tables: Document tables, as models or camelCase dicts.
        relationships: Document relationships, as models or camelCase dicts.
        table_error_policy: See ``apply_sync_plan()``.
        client_factory: Builds the client; defaults to ``AsyncMySQLAdapter``.

    Example:
        report = await sync_schema(config, "shop", tables, relationships)
        print(report.to_response())
    """
    try:
        document = _as_document(tables, relationships)
    except ValidationError as e:
        logger.error(f"Invalid schema document: {e}")
        return SyncReport(success=False, message=f"MySQL sync failed: {e}")

    factory = client_factory or _default_client_factory
    database = sanitize_identifier(database_name)
    phase = SyncPhase.CONNECT

    logger.info(f"Syncing {len(document.tables)} table(s) to MySQL database {database}")
    try:
        client = factory(config, database)
    except Exception as e:
        logger.error(f"MySQL sync failed during {phase.value}: {e}")
        return SyncReport(success=False, message=f"MySQL sync failed: {e}", failed_phase=phase)

    try:
        await client.ping()

        phase = SyncPhase.DISABLE_CHECKS
        await client.execute(DISABLE_FK_CHECKS)

        phase = SyncPhase.INVENTORY
        live_tables = await SchemaIntrospector(client).get_tables()
        logger.info(f"Found {len(live_tables)} live table(s)")

        plan = build_sync_plan(document, live_tables)
        report = await apply_sync_plan(client, plan, table_error_policy)

    except Exception as e:
        logger.error(f"MySQL sync failed during {phase.value}: {e}")
        await _close_client(client)
        return SyncReport(success=False, message=f"MySQL sync failed: {e}", failed_phase=phase)

    # Re-enabled even after a failed phase so the session is left clean
    try:
        await client.execute(ENABLE_FK_CHECKS)
    except Exception as e:
        logger.error(f"MySQL sync failed during {SyncPhase.ENABLE_CHECKS.value}: {e}")
        if report.success:
            report.success = False
            report.message = f"MySQL sync failed: {e}"
            report.failed_phase = SyncPhase.ENABLE_CHECKS
    finally:
        await _close_client(client)

    if report.success:
        logger.info(report.message)
    else:
        logger.error(report.message)
    return report


async def preview_sync(
    config: ConnectionConfig,
    database_name: str,
    document: SchemaDocument,
    *,
    client_factory: ClientFactory | None = None,
) -> SyncPlan:
    """Dry run: inventory the database and build the plan without DDL.

    Raises:
        Exception: Driver error if the server cannot be reached.
    """
    factory = client_factory or _default_client_factory
    client = factory(config, sanitize_identifier(database_name))
    try:
        live_tables = await SchemaIntrospector(client).get_tables()
    finally:
        await _close_client(client)
    return build_sync_plan(document, live_tables)
