"""Idempotent creation of the archive tables.

The DDL is compiled from the SQLAlchemy models for the PostgreSQL dialect and
executed over the engine's asyncpg connection inside a single transaction.
"""

import asyncpg
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable, DropTable

from models import Base
from utils.exceptions import SchemaError
from utils.logging import get_logger

DDL_TIMEOUT = 10.0

logger = get_logger("archive.schema")


def create_statements() -> list[str]:
    """Return the CREATE statements for every archive table and index.

    Tables come in foreign key dependency order, each guarded with
    ``IF NOT EXISTS`` so the statements can run on every start.
    """
    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip())
        for index in sorted(table.indexes, key=lambda i: i.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip())
    return statements


def drop_statements() -> list[str]:
    """Return DROP statements for every archive table, dependents first."""
    dialect = postgresql.dialect()
    return [
        f"{str(DropTable(table, if_exists=True).compile(dialect=dialect)).strip()} CASCADE"
        for table in reversed(Base.metadata.sorted_tables)
    ]


async def create_tables(conn: asyncpg.Connection) -> None:
    """Create any missing archive table in one transaction.

    Args:
        conn: The open connection.

    Raises:
        SchemaError: If any statement fails. The transaction has been
            rolled back by then.
    """
    try:
        async with conn.transaction():
            for statement in create_statements():
                await conn.execute(statement, timeout=DDL_TIMEOUT)
    except (TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.error("schema_bootstrap_failed", error=str(e))
        raise SchemaError(f"Could not create tables: {e}") from e
    logger.info("tables_checked")


async def drop_tables(conn: asyncpg.Connection) -> None:
    """Drop every archive table in one transaction.

    Raises:
        SchemaError: If any statement fails.
    """
    logger.info("dropping_tables")
    try:
        async with conn.transaction():
            for statement in drop_statements():
                await conn.execute(statement, timeout=DDL_TIMEOUT)
    except (TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.error("schema_drop_failed", error=str(e))
        raise SchemaError(f"Could not drop tables: {e}") from e
    logger.info("tables_dropped")
