"""Recording of message creation, edits and soft deletion."""

from archive.events import MessageEvent, snowflake, to_db_timestamp
from archive.statements import StatementRegistry
from archive.users import UserDirectory


def _affected_rows(status: str) -> int:
    # "INSERT 0 1" / "UPDATE 1"
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class MessageArchive:
    """Writes messages and their edit history."""

    def __init__(self, statements: StatementRegistry, users: UserDirectory) -> None:
        self.statements = statements
        self.users = users

    async def record_message(self, event: MessageEvent) -> bool:
        """Store a new message or append an edit.

        Returns:
            True if a row was written. An edit of a message the archive
            never stored writes nothing and returns False.
        """
        if event.is_edit():
            status = await self.statements.execute(
                "insert_edit",
                event.content,
                to_db_timestamp(event.edited_at),
                snowflake(event.message_id),
            )
            return _affected_rows(status) > 0

        await self.users.update_user(event.author)
        await self.statements.execute(
            "insert_message",
            snowflake(event.message_id),
            snowflake(event.guild.id),
            snowflake(event.channel.id),
            snowflake(event.author.id),
            event.author.name,
            event.content,
            to_db_timestamp(event.created_at),
        )
        return True

    async def delete_message(self, message_id) -> bool:
        """Flag a message as deleted. The row and its edits stay in place."""
        status = await self.statements.execute("mark_deleted", snowflake(message_id))
        return _affected_rows(status) > 0
