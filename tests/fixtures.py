"""
Test fixtures for the message archive.

This module provides an in-memory stand-in for a PostgreSQL server reached
through asyncpg. ``FakeDatabase`` holds the table contents and hands out
``FakeConnection`` objects, so an engine that reconnects sees the rows it
wrote before. Failures can be injected per statement to exercise the
engine's timeout and error handling.
"""

import asyncio
import itertools
import os
import sys
from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

import asyncpg

from archive import statements as sql
from archive.engine import DbEngine
from models.base import ALIASES_LENGTH, NAME_LENGTH

CREDENTIALS = {
    "host": "localhost",
    "database": "archive",
    "user": "archive",
    "password": "secret",
}


class FakeRecord(dict):
    """Mapping that also supports positional access, like ``asyncpg.Record``."""

    def __getitem__(self, key):
        if isinstance(key, int):
            return list(self.values())[key]
        return super().__getitem__(key)


class FakeTransaction:
    def __init__(self, conn: "FakeConnection", readonly: bool) -> None:
        self.conn = conn
        self.readonly = readonly

    async def __aenter__(self) -> "FakeTransaction":
        self.conn.transactions.append(self.readonly)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


class FakeStatement:
    def __init__(self, conn: "FakeConnection", query: str) -> None:
        self.conn = conn
        self.query = query
        self._status = ""

    async def fetch(self, *args, timeout: float = None) -> list:
        if self.conn.database.gate is not None:
            await self.conn.database.gate.wait()
        rows, self._status = self.conn.run(self.query, args)
        return rows

    async def fetchrow(self, *args, timeout: float = None):
        rows = await self.fetch(*args, timeout=timeout)
        return rows[0] if rows else None

    async def fetchval(self, *args, timeout: float = None):
        row = await self.fetchrow(*args, timeout=timeout)
        return row[0] if row else None

    def get_statusmsg(self) -> str:
        return self._status

    def get_attributes(self) -> list:
        columns, _ = self.conn.database.adhoc[self.query]
        return [SimpleNamespace(name=column) for column in columns]


class FakeConnection:
    """One connection to a ``FakeDatabase``."""

    def __init__(self, database: "FakeDatabase") -> None:
        self.database = database
        self.closed = False
        self.transactions: list[bool] = []
        self.prepared: list[str] = []

    def is_closed(self) -> bool:
        return self.closed

    async def close(self, timeout: float = None) -> None:
        self.closed = True

    def terminate(self) -> None:
        self.closed = True

    def transaction(self, readonly: bool = False, **kwargs) -> FakeTransaction:
        return FakeTransaction(self, readonly)

    async def execute(self, query: str, *args, timeout: float = None) -> str:
        if self.database.fail_ddl is not None:
            raise self.database.fail_ddl
        self.database.ddl.append(query)
        return query.split(" ", 1)[0]

    async def prepare(self, query: str, timeout: float = None) -> FakeStatement:
        failure = self.database.fail_prepare.get(query)
        if failure is not None:
            raise failure
        if query not in sql.STATEMENTS.values() and query not in self.database.adhoc:
            raise asyncpg.PostgresSyntaxError(f'syntax error at or near "{query.split(" ", 1)[0]}"')
        self.prepared.append(query)
        return FakeStatement(self, query)

    def run(self, query: str, args: tuple) -> tuple[list, str]:
        failure = self.database.fail_run.get(query)
        if failure is not None:
            raise failure
        return self.database.apply(query, args)


def check_length(value: str, limit: int, column: str) -> None:
    """Reject values a VARCHAR(limit) column would refuse."""
    if value is not None and len(value) > limit:
        raise asyncpg.exceptions.StringDataRightTruncationError(
            f"value too long for type character varying({limit}) in column {column}"
        )


class FakeDatabase:
    """In-memory contents of the archive tables."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.messages: dict[str, dict] = {}
        self.edits: list[dict] = []
        self.bans: list[dict] = []
        self.histories: list[dict] = []
        self.ddl: list[str] = []
        self.adhoc: dict[str, tuple[list[str], list[tuple]]] = {}
        self.fail_ddl: Exception | None = None
        self.fail_prepare: dict[str, Exception] = {}
        self.fail_run: dict[str, Exception] = {}
        self.connections: list[FakeConnection] = []
        # When set, statements wait for this event before running
        self.gate: asyncio.Event | None = None
        self._ban_ids = itertools.count(1)
        self._edit_ids = itertools.count(1)
        self._history_ids = itertools.count(1)

    async def connect(self, **kwargs) -> FakeConnection:
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    def apply(self, query: str, args: tuple) -> tuple[list, str]:
        if query == sql.INSERT_MESSAGE:
            message_id, guild_id, channel_id, author_id, author_name, content, created_at = args
            check_length(author_name, NAME_LENGTH, "author_name")
            if message_id in self.messages:
                raise asyncpg.UniqueViolationError("duplicate key value violates messages_pkey")
            if author_id not in self.users:
                raise asyncpg.ForeignKeyViolationError("messages_author_id_fkey")
            self.messages[message_id] = {
                "id": message_id,
                "guild_id": guild_id,
                "channel_id": channel_id,
                "author_id": author_id,
                "author_name": author_name,
                "content": content,
                "created_at": created_at,
                "deleted": False,
            }
            return [], "INSERT 0 1"

        if query == sql.INSERT_EDIT:
            content, edited_at, message_id = args
            if message_id not in self.messages:
                return [], "INSERT 0 0"
            self.edits.append({
                "id": next(self._edit_ids),
                "message_id": message_id,
                "content": content,
                "edited_at": edited_at,
            })
            return [], "INSERT 0 1"

        if query == sql.MARK_DELETED:
            (message_id,) = args
            if message_id not in self.messages:
                return [], "UPDATE 0"
            self.messages[message_id]["deleted"] = True
            return [], "UPDATE 1"

        if query == sql.INSERT_BAN:
            guild_id, banned_id, banned_name, executor_id, executor_name, reason, created_at = args
            check_length(banned_name, NAME_LENGTH, "banned_name")
            check_length(executor_name, NAME_LENGTH, "executor_name")
            for user_id in (banned_id, executor_id):
                if user_id not in self.users:
                    raise asyncpg.ForeignKeyViolationError("bans_user_fkey")
            self.bans.append({
                "id": next(self._ban_ids),
                "guild_id": guild_id,
                "banned_id": banned_id,
                "banned_name": banned_name,
                "executor_id": executor_id,
                "executor_name": executor_name,
                "reason": reason,
                "created_at": created_at,
            })
            return [], "INSERT 0 1"

        if query == sql.LOOKUP_BANS:
            (guild_id,) = args
            rows = sorted(
                (ban for ban in self.bans if ban["guild_id"] == guild_id),
                key=lambda ban: (ban["created_at"], ban["id"]),
            )
            return [FakeRecord(row) for row in rows], f"SELECT {len(rows)}"

        if query == sql.LOOKUP_USER:
            (user_id,) = args
            user = self.users.get(user_id)
            return ([FakeRecord(user)] if user else []), f"SELECT {int(user is not None)}"

        if query == sql.INSERT_USER:
            user_id, username, aliases = args
            check_length(username, NAME_LENGTH, "username")
            check_length(aliases, ALIASES_LENGTH, "aliases")
            if user_id in self.users:
                raise asyncpg.UniqueViolationError("duplicate key value violates users_pkey")
            self.users[user_id] = {"id": user_id, "username": username, "aliases": aliases}
            return [], "INSERT 0 1"

        if query == sql.UPDATE_USER:
            user_id, username, aliases = args
            check_length(username, NAME_LENGTH, "username")
            check_length(aliases, ALIASES_LENGTH, "aliases")
            if user_id not in self.users:
                return [], "UPDATE 0"
            self.users[user_id].update(username=username, aliases=aliases)
            return [], "UPDATE 1"

        if query == sql.CREATE_HISTORY:
            user_id, channel_id, channel_name = args
            if user_id not in self.users:
                raise asyncpg.ForeignKeyViolationError("histories_user_id_fkey")
            history_id = next(self._history_ids)
            self.histories.append({
                "id": history_id,
                "user_id": user_id,
                "channel_id": channel_id,
                "channel_name": channel_name,
            })
            return [FakeRecord(id=history_id)], "INSERT 0 1"

        columns, rows = self.adhoc[query]
        return [tuple(row) for row in rows], f"SELECT {len(rows)}"


def patch_connect(database: FakeDatabase):
    """Route ``asyncpg.connect`` to the given fake database."""
    return patch("asyncpg.connect", new=AsyncMock(side_effect=database.connect))


def make_engine(section: Mapping[str, Any] | None = CREDENTIALS) -> DbEngine:
    """Create an engine reading the given ``db`` section."""
    return DbEngine(credentials=lambda: None if section is None else dict(section))
