"""Anonymous chat domain exports."""

from . import service, sockets  # noqa: F401
from .exceptions import RoomForbidden, RoomNotFound  # noqa: F401
from .schemas import ChatMessageOut, ChatPage, SendMessageRequest  # noqa: F401
