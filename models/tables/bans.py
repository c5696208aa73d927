"""SQLAlchemy model for bans table."""

from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from models.base import ID_LENGTH, NAME_LENGTH, REASON_LENGTH, Base


class Ban(Base):
    """Model for bans table.

    Append-only audit log of moderation bans.
    """

    __tablename__ = "bans"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    banned_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="NO ACTION"), nullable=False
    )
    banned_name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    executor_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="NO ACTION"), nullable=False
    )
    executor_name: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    reason: Mapped[str] = mapped_column(String(REASON_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(precision=3), nullable=False)
