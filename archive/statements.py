"""The fixed set of prepared statements used by the engine at runtime."""

from typing import Any

import asyncpg

from utils.logging import get_logger

# Every statement execution is bounded by this many seconds.
STATEMENT_TIMEOUT = 10.0

INSERT_MESSAGE = (
    "INSERT INTO messages(id, guild_id, channel_id, author_id, author_name, content, created_at)"
    " VALUES ($1, $2, $3, $4, $5, $6, $7)"
)
# Selecting from messages drops edits of messages the archive never saw.
INSERT_EDIT = (
    "INSERT INTO message_edits(message_id, content, edited_at)"
    " SELECT id, $1, $2 FROM messages WHERE id = $3"
)
MARK_DELETED = "UPDATE messages SET deleted = TRUE WHERE id = $1"
INSERT_BAN = (
    "INSERT INTO bans(guild_id, banned_id, banned_name, executor_id, executor_name, reason, created_at)"
    " VALUES ($1, $2, $3, $4, $5, $6, $7)"
)
LOOKUP_BANS = (
    "SELECT id, guild_id, banned_id, banned_name, executor_id, executor_name, reason, created_at"
    " FROM bans WHERE guild_id = $1 ORDER BY created_at, id"
)
LOOKUP_USER = "SELECT id, username, aliases FROM users WHERE id = $1 FOR UPDATE"
INSERT_USER = "INSERT INTO users(id, username, aliases) VALUES ($1, $2, $3)"
UPDATE_USER = "UPDATE users SET username = $2, aliases = $3 WHERE id = $1"
CREATE_HISTORY = (
    "INSERT INTO histories(user_id, channel_id, channel_name) VALUES ($1, $2, $3) RETURNING id"
)

STATEMENTS: dict[str, str] = {
    "insert_message": INSERT_MESSAGE,
    "insert_edit": INSERT_EDIT,
    "mark_deleted": MARK_DELETED,
    "insert_ban": INSERT_BAN,
    "lookup_bans": LOOKUP_BANS,
    "lookup_user": LOOKUP_USER,
    "insert_user": INSERT_USER,
    "update_user": UPDATE_USER,
    "create_history": CREATE_HISTORY,
}


class StatementRegistry:
    """Prepares and owns the engine's statements.

    Statements are bound to the connection they were prepared on and must
    not be used concurrently; the engine serializes access to them.
    """

    def __init__(self) -> None:
        self._statements: dict[str, Any] = {}
        self.logger = get_logger("archive.statements")

    @property
    def prepared(self) -> bool:
        return bool(self._statements)

    async def prepare(self, conn: asyncpg.Connection) -> None:
        """Prepare every statement once on the given connection.

        Raises:
            asyncpg.PostgresError: If a statement cannot be prepared.
            TimeoutError: If preparing takes longer than the statement timeout.
        """
        statements = {}
        for name, query in STATEMENTS.items():
            statements[name] = await conn.prepare(query, timeout=STATEMENT_TIMEOUT)
        self._statements = statements
        self.logger.info("statements_prepared", count=len(statements))

    def get(self, name: str) -> Any:
        """Return the prepared statement registered under ``name``.

        Raises:
            KeyError: If the registry is not prepared.
        """
        return self._statements[name]

    async def fetch(self, name: str, *args) -> list[asyncpg.Record]:
        return await self.get(name).fetch(*args, timeout=STATEMENT_TIMEOUT)

    async def fetchrow(self, name: str, *args) -> asyncpg.Record | None:
        return await self.get(name).fetchrow(*args, timeout=STATEMENT_TIMEOUT)

    async def fetchval(self, name: str, *args) -> Any:
        return await self.get(name).fetchval(*args, timeout=STATEMENT_TIMEOUT)

    async def execute(self, name: str, *args) -> str:
        """Run a statement that returns no rows.

        Returns:
            The command status, e.g. ``"UPDATE 1"``.
        """
        statement = self.get(name)
        await statement.fetch(*args, timeout=STATEMENT_TIMEOUT)
        return statement.get_statusmsg()

    def release(self) -> None:
        """Forget every prepared statement."""
        self._statements = {}
