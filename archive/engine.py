"""The process-wide archive engine.

The engine owns the single database connection and everything bound to it.
Hosts call ``init()`` once; afterwards every archive operation is available
until a statement times out or ``close()`` is called, at which point the
operations fall back to their documented defaults (False, an empty list,
``-1`` or the fallback text) until ``init()`` succeeds again.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

import asyncpg

import config
from archive.bans import Ban, BanLedger
from archive.connection import ConnectionManager
from archive.events import ChannelLike, GuildLike, Identity, MessageEvent
from archive.histories import NO_HISTORY, HistoryLog
from archive.messages import MessageArchive
from archive.monitor import FailureMonitor
from archive.query import AdHocQuery, QueryCursor, stringify
from archive.schema import create_tables, drop_tables
from archive.statements import StatementRegistry
from archive.users import UserDirectory
from utils.exceptions import (
    ArchiveError,
    ConfigError,
    ConnectError,
    DatabaseError,
    SchemaError,
)
from utils.logging import bind_operation, get_logger

T = TypeVar("T")

type CredentialsLoader = Callable[[], Mapping[str, Any] | None]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class DbEngine:
    """Lifecycle and entry points of the archive.

    ``init()`` and ``close()`` are mutually exclusive. Archive operations
    share one connection, which runs one statement at a time, so they are
    serialized behind a second lock.
    """

    def __init__(self, credentials: CredentialsLoader = config.database_section) -> None:
        """Initialize an engine that is not connected yet.

        Args:
            credentials: Called on every ``init()`` to read the raw ``db``
                configuration section.
        """
        self._credentials = credentials
        self._state = EngineState.UNINITIALIZED
        self._state_lock = asyncio.Lock()
        self._op_lock = asyncio.Lock()
        self._pending_init: asyncio.Task | None = None

        self.connection = ConnectionManager()
        self.statements = StatementRegistry()
        self.monitor = FailureMonitor(self.close)
        self.users: UserDirectory | None = None
        self.messages: MessageArchive | None = None
        self.bans: BanLedger | None = None
        self.histories: HistoryLog | None = None
        self.adhoc: AdHocQuery | None = None
        self.logger = get_logger("archive.engine")

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    # Lifecycle

    async def init(self) -> bool:
        """Connect, bootstrap the schema and prepare the statements.

        Calling this while already initialized does nothing. Concurrent
        callers share a single initialization attempt and all receive its
        outcome.

        Returns:
            True if the engine is ready.
        """
        if self.is_ready:
            return True
        task = self._pending_init
        if task is None or task.done():
            task = asyncio.ensure_future(self._initialize())
            task.add_done_callback(self._forget_init)
            self._pending_init = task
        return await asyncio.shield(task)

    def _forget_init(self, task: asyncio.Task) -> None:
        if self._pending_init is task:
            self._pending_init = None

    def _load_credentials(self) -> Mapping[str, Any] | None:
        try:
            return self._credentials()
        except ValueError as e:
            raise ConfigError(message=f"Invalid database configuration: {e}") from e

    async def _initialize(self) -> bool:
        async with self._state_lock:
            if self.is_ready:
                return True
            self._state = EngineState.INITIALIZING
            try:
                return await self._bootstrap()
            except Exception:
                self.logger.exception("initialization_failed", action="closing database")
                await self._teardown()
                return False

    async def _bootstrap(self) -> bool:
        try:
            conn = await self.connection.open(self._load_credentials())
        except ConfigError as e:
            self.logger.info("database_not_configured", reason=e.message)
            self._state = EngineState.UNINITIALIZED
            return False
        except ConnectError as e:
            self.logger.error("database_unavailable", reason=e.message)
            self._state = EngineState.UNINITIALIZED
            return False

        try:
            await create_tables(conn)
        except SchemaError:
            self.logger.critical("schema_bootstrap_failed", action="closing database")
            await self._teardown()
            return False

        try:
            await self.statements.prepare(conn)
        except (TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self.logger.critical("statement_preparation_failed", error=str(e))
            await self._teardown()
            return False

        self.users = UserDirectory(conn, self.statements)
        self.messages = MessageArchive(self.statements, self.users)
        self.bans = BanLedger(self.statements, self.users)
        self.histories = HistoryLog(self.statements, self.users)
        self.adhoc = AdHocQuery(conn)
        self._state = EngineState.READY
        self.logger.info("archive_ready")
        return True

    async def close(self) -> None:
        """Release the statements and the connection.

        Idempotent and never raises. ``init()`` may be called again
        afterwards.
        """
        async with self._state_lock:
            await self._teardown()

    async def _teardown(self) -> None:
        if self._state in (EngineState.UNINITIALIZED, EngineState.CLOSED) and not self.connection.is_open:
            return
        self.statements.release()
        self.users = self.messages = self.bans = self.histories = self.adhoc = None
        await self.connection.close()
        self._state = EngineState.CLOSED
        self.logger.info("database_closed")

    async def drop(self) -> bool:
        """Drop every archive table and leave the engine closed.

        Maintenance only; opens its own connection when needed. Waits for
        the operation in flight, if any, to finish first.

        Returns:
            True if the tables were dropped.
        """
        # Lock order everywhere: operation lock, then state lock.
        async with self._op_lock, self._state_lock:
            dropped = False
            try:
                conn = self.connection.conn if self.connection.is_open else await self.connection.open(self._load_credentials())
                await drop_tables(conn)
                dropped = True
            except ArchiveError as e:
                self.logger.error("drop_failed", reason=e.message)
            await self._teardown()
            return dropped

    # Operations

    async def _run(self, operation: str, action: Callable[[], Awaitable[T]], default: T) -> T:
        if not self.is_ready:
            return default
        async with self._op_lock:
            if not self.is_ready:
                return default
            try:
                with bind_operation(operation):
                    async with self.monitor.watch(operation):
                        return await action()
            except DatabaseError:
                return default

    async def record_message(self, event: MessageEvent) -> bool:
        """Archive a new message or an edit of one.

        Private messages are never archived.

        Returns:
            True if something was written.
        """
        if event.is_private():
            return False
        return await self._run(
            "record_message", lambda: self.messages.record_message(event), False
        )

    async def delete_message(self, message_id) -> bool:
        """Flag a message as deleted; returns True if a row matched."""
        return await self._run(
            "delete_message", lambda: self.messages.delete_message(message_id), False
        )

    async def update_user(self, user: Identity) -> bool:
        """Insert or refresh a user and its alias history."""
        return await self._run("update_user", lambda: self.users.update_user(user), False)

    async def add_ban(
        self, guild: GuildLike, banned: Identity, executor: Identity, reason: str | None
    ) -> bool:
        """Record a ban; returns True if it was stored."""

        async def action() -> bool:
            await self.bans.add_ban(guild, banned, executor, reason)
            return True

        return await self._run("add_ban", action, False)

    async def get_bans(self, guild: GuildLike) -> list[Ban]:
        """Every ban recorded for the guild; empty when none or unavailable."""
        return await self._run("get_bans", lambda: self.bans.get_bans(guild), [])

    async def create_history(self, user: Identity, channel: ChannelLike) -> int:
        """Open a history session; returns its id or -1."""
        return await self._run(
            "create_history",
            lambda: self.histories.create_history(user, channel),
            NO_HISTORY,
        )

    async def query(self, sql: str) -> QueryCursor | None:
        """Run a read-only ad-hoc query.

        The returned cursor must be closed by the caller; ``stringify``
        does that.

        Returns:
            The cursor, or None if the engine is not initialized.

        Raises:
            TransientQueryError: If the statement fails.
            StatementTimeoutError: If it times out; the engine is closed.
        """
        if not self.is_ready:
            return None
        async with self._op_lock:
            if not self.is_ready:
                return None
            with bind_operation("query"):
                async with self.monitor.watch("query"):
                    return await self.adhoc.query(sql)

    async def run_query(self, sql: str) -> str:
        """Run an ad-hoc query and render it as text."""
        try:
            cursor = await self.query(sql)
        except DatabaseError as e:
            return f"Query failed: {e.message}"
        return stringify(cursor)


_engine: DbEngine | None = None


def get_engine() -> DbEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = DbEngine()
    return _engine
