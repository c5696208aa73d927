"""SQLAlchemy model for histories table."""

from datetime import datetime

from sqlalchemy import ForeignKey, String, func
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from models.base import ID_LENGTH, Base


class History(Base):
    """Model for histories table.

    Marks the start of a history session for a user in a channel.
    """

    __tablename__ = "histories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    channel_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(precision=3), nullable=False, server_default=func.now()
    )
