"""Ad-hoc read queries and their plain-text rendering."""

from collections.abc import Iterator, Sequence
from typing import Any

import asyncpg

from archive.statements import STATEMENT_TIMEOUT
from utils.exceptions import ArchiveError, TransientQueryError
from utils.logging import get_logger

UNAVAILABLE = "DB not available!"
NULL = "null"

logger = get_logger("archive.query")


class QueryCursor:
    """The result of one ad-hoc query.

    A scoped resource: whoever receives it must close it, which is easiest
    with ``with`` or ``async with``. Reading a closed cursor raises
    ``TransientQueryError``.
    """

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.columns = list(columns)
        self._rows: list[tuple] | None = [tuple(row) for row in rows]

    @property
    def closed(self) -> bool:
        return self._rows is None

    @property
    def rows(self) -> list[tuple]:
        if self._rows is None:
            raise TransientQueryError("query", "Cursor is closed")
        return self._rows

    def __iter__(self) -> Iterator[tuple]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def close(self) -> None:
        self._rows = None

    def __enter__(self) -> "QueryCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "QueryCursor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class AdHocQuery:
    """Runs caller supplied SQL inside a read-only transaction."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    async def query(self, sql: str) -> QueryCursor:
        async with self.conn.transaction(readonly=True):
            statement = await self.conn.prepare(sql, timeout=STATEMENT_TIMEOUT)
            records = await statement.fetch(timeout=STATEMENT_TIMEOUT)
            columns = [attribute.name for attribute in statement.get_attributes()]
        return QueryCursor(columns, [tuple(record) for record in records])


def _cell(value: Any) -> str:
    return NULL if value is None else str(value)


def render_table(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Render a header and rows as a fixed-width, left-aligned table.

    Each column is as wide as its longest label or cell plus one space.
    ``None`` cells render as ``null``. Lines are separated by newlines with
    no newline after the last one.
    """
    table = [[str(column) for column in columns]]
    table.extend([_cell(value) for value in row] for row in rows)
    widths = [max(len(line[i]) for line in table) + 1 for i in range(len(columns))]
    return "\n".join(
        "".join(cell.ljust(width) for cell, width in zip(line, widths)) for line in table
    )


def stringify(cursor: QueryCursor | None) -> str:
    """Render a query result and close it.

    Returns:
        The rendered table, or ``UNAVAILABLE`` when there is no result to
        render.
    """
    if cursor is None:
        return UNAVAILABLE
    try:
        return render_table(cursor.columns, cursor.rows)
    except ArchiveError as e:
        logger.error("stringify_failed", error=e.message)
        return UNAVAILABLE
    finally:
        cursor.close()
