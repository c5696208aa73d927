"""SQLAlchemy model for users table."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import ALIASES_LENGTH, ID_LENGTH, NAME_LENGTH, Base


class User(Base):
    """Model for users table.

    One row per platform identity. ``aliases`` holds every username seen
    for the user, newline separated, oldest first.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    username: Mapped[str] = mapped_column(String(NAME_LENGTH), nullable=False)
    aliases: Mapped[str] = mapped_column(String(ALIASES_LENGTH), nullable=False)
