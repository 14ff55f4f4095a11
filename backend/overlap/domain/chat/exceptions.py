"""Chat domain exceptions."""

from __future__ import annotations

from overlap.domain.common.errors import DomainError, InvalidInput


class ChatError(DomainError):
	reason = "chat_error"


class RoomNotFound(ChatError):
	reason = "room_not_found"


class RoomForbidden(ChatError):
	reason = "room_forbidden"


class MessageEmpty(InvalidInput):
	reason = "message_empty"


class MessageTooLong(InvalidInput):
	reason = "message_too_long"
