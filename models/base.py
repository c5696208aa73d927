"""Declarative base for the archive's table models."""

from sqlalchemy.orm import DeclarativeBase

# Platform identifiers are opaque strings; 32 characters leaves headroom
# over the 17-20 digit snowflakes in use today. Names fit webhook
# display names, the longest the platform hands out.
ID_LENGTH = 32
NAME_LENGTH = 80
ALIASES_LENGTH = 1000
REASON_LENGTH = 250


class Base(DeclarativeBase):
    """Base class for all archive models."""
