"""Interfaces consumed from the chat platform binding.

The archive only needs a handful of attributes from the platform's objects.
They are described here as runtime-checkable protocols which discord.py's
``User``, ``Member``, ``Guild`` and ``TextChannel`` satisfy as they are.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import discord


@runtime_checkable
class Identity(Protocol):
    """A user identity: stable id plus current username."""

    id: Any
    name: str


@runtime_checkable
class GuildLike(Protocol):
    id: Any


@runtime_checkable
class ChannelLike(Protocol):
    id: Any
    name: str


@dataclass(frozen=True)
class Author:
    """Stand-in identity for when the platform only hands out an id."""

    id: str
    name: str


@dataclass(frozen=True)
class MessageEvent:
    """A message creation or edit observed on the platform."""

    message_id: str
    content: str
    created_at: datetime
    author: Identity
    guild: GuildLike | None = None
    channel: ChannelLike | None = None
    edited_at: datetime | None = None
    private: bool = False
    edit: bool = False

    def is_private(self) -> bool:
        return self.private

    def is_edit(self) -> bool:
        return self.edit

    @classmethod
    def from_message(cls, message: discord.Message, edit: bool = False) -> "MessageEvent":
        """Build an event from a discord.py message.

        Args:
            message: The message as received from the gateway.
            edit: Whether the message arrived through an edit event.

        Returns:
            The event; messages outside a guild are flagged private.
        """
        private = message.guild is None or isinstance(
            message.channel, (discord.DMChannel, discord.GroupChannel)
        )
        return cls(
            message_id=str(message.id),
            content=message.content,
            created_at=message.created_at,
            edited_at=message.edited_at,
            author=message.author,
            guild=message.guild,
            channel=message.channel,
            private=private,
            edit=edit,
        )


def snowflake(value: Any) -> str:
    """Render a platform identifier as the opaque string the archive stores."""
    return str(value)


def to_db_timestamp(value: datetime | None) -> datetime:
    """Convert a timestamp to the naive UTC form stored in TIMESTAMP columns."""
    if value is None:
        value = datetime.now(UTC)
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value
