from models.base import Base
from models.tables import Ban, History, Message, MessageEdit, User

__all__ = ["Base", "Ban", "History", "Message", "MessageEdit", "User"]
