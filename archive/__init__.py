"""Message, ban and user-alias archive for the moderation bot."""

from archive.bans import Ban
from archive.engine import DbEngine, EngineState, get_engine
from archive.events import Author, MessageEvent
from archive.query import QueryCursor, render_table, stringify

__all__ = [
    "Author",
    "Ban",
    "DbEngine",
    "EngineState",
    "MessageEvent",
    "QueryCursor",
    "get_engine",
    "render_table",
    "stringify",
]
