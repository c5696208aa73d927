"""User identity upserts and alias history merging."""

import asyncpg

from archive.events import Identity, snowflake
from archive.statements import StatementRegistry
from models.base import ALIASES_LENGTH

ALIAS_SEPARATOR = "\n"


def merge_aliases(history: str, username: str, limit: int = ALIASES_LENGTH) -> str:
    """Append ``username`` to a serialized alias history.

    Names already present are not added again. When the result would be
    longer than ``limit``, whole aliases are dropped from the oldest end
    until it fits; the newest alias is always kept.

    Args:
        history: The stored history, oldest alias first.
        username: The name just observed.
        limit: Maximum length of the serialized history.

    Returns:
        The new serialized history.
    """
    aliases = history.split(ALIAS_SEPARATOR) if history else []
    if username in aliases:
        return history
    aliases.append(username)
    while len(aliases) > 1 and len(ALIAS_SEPARATOR.join(aliases)) > limit:
        aliases.pop(0)
    return ALIAS_SEPARATOR.join(aliases)


class UserDirectory:
    """Keeps the users table in step with the identities the bot observes."""

    def __init__(self, conn: asyncpg.Connection, statements: StatementRegistry) -> None:
        self.conn = conn
        self.statements = statements

    async def update_user(self, user: Identity) -> bool:
        """Insert or refresh a user row.

        The lookup locks the row, so read and write happen in one
        transaction.

        Returns:
            True if a row was written, False if the stored username was
            already current.
        """
        user_id = snowflake(user.id)
        async with self.conn.transaction():
            row = await self.statements.fetchrow("lookup_user", user_id)
            if row is None:
                await self.statements.execute("insert_user", user_id, user.name, user.name)
                return True
            if row["username"] == user.name:
                return False
            aliases = merge_aliases(row["aliases"], user.name)
            await self.statements.execute("update_user", user_id, user.name, aliases)
            return True
