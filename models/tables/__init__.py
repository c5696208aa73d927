# Import all table models here
from models.tables.users import User
from models.tables.messages import Message, MessageEdit
from models.tables.bans import Ban
from models.tables.histories import History
