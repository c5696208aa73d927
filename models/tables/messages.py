"""SQLAlchemy models for messages and message_edits tables."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Text, false
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from models.base import ID_LENGTH, NAME_LENGTH, Base


class Message(Base):
    """Model for messages table.

    Rows are never removed by the archive; deletion only flips ``deleted``.
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    guild_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    channel_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    author_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="NO ACTION"), nullable=False
    )
    author_name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(precision=3), nullable=False)
    deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )


class MessageEdit(Base):
    """Model for message_edits table.

    Append-only edit history; ordered by ``edited_at`` then ``id``.
    """

    __tablename__ = "message_edits"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    message_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(TIMESTAMP(precision=3), nullable=False)
