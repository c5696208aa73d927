"""The append-only ban audit log."""

from dataclasses import dataclass
from datetime import datetime

import asyncpg

from archive.events import GuildLike, Identity, snowflake, to_db_timestamp
from archive.statements import StatementRegistry
from archive.users import UserDirectory
from models.base import REASON_LENGTH

ELLIPSIS = "..."


def truncate_reason(reason: str | None, limit: int = REASON_LENGTH) -> str:
    """Shorten a ban reason to fit the reason column.

    Reasons longer than ``limit`` keep their first ``limit - 3`` characters
    followed by ``...``.
    """
    reason = reason or ""
    if len(reason) > limit:
        reason = reason[: limit - len(ELLIPSIS)] + ELLIPSIS
    return reason


@dataclass(frozen=True)
class Ban:
    """A recorded ban."""

    reason: str
    banned_id: str
    banned_name: str
    executor_id: str
    executor_name: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: asyncpg.Record) -> "Ban":
        return cls(
            reason=record["reason"],
            banned_id=record["banned_id"],
            banned_name=record["banned_name"],
            executor_id=record["executor_id"],
            executor_name=record["executor_name"],
            created_at=record["created_at"],
        )


class BanLedger:
    """Records moderation bans and reads them back per guild."""

    def __init__(self, statements: StatementRegistry, users: UserDirectory) -> None:
        self.statements = statements
        self.users = users

    async def add_ban(
        self, guild: GuildLike, banned: Identity, executor: Identity, reason: str | None
    ) -> None:
        reason = truncate_reason(reason)
        await self.users.update_user(banned)
        # Both columns reference users, so the executor must exist as well.
        await self.users.update_user(executor)
        await self.statements.execute(
            "insert_ban",
            snowflake(guild.id),
            snowflake(banned.id),
            banned.name,
            snowflake(executor.id),
            executor.name,
            reason,
            to_db_timestamp(None),
        )

    async def get_bans(self, guild: GuildLike) -> list[Ban]:
        records = await self.statements.fetch("lookup_bans", snowflake(guild.id))
        return [Ban.from_record(record) for record in records]
