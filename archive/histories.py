"""History session markers per user and channel."""

from archive.events import ChannelLike, Identity, snowflake
from archive.statements import StatementRegistry
from archive.users import UserDirectory

NO_HISTORY = -1


class HistoryLog:
    def __init__(self, statements: StatementRegistry, users: UserDirectory) -> None:
        self.statements = statements
        self.users = users

    async def create_history(self, user: Identity, channel: ChannelLike) -> int:
        """Open a history session and return its generated id."""
        await self.users.update_user(user)
        history_id = await self.statements.fetchval(
            "create_history", snowflake(user.id), snowflake(channel.id), channel.name
        )
        return NO_HISTORY if history_id is None else int(history_id)
