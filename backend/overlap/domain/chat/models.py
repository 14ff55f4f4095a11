"""Chat room and message records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


@dataclass(slots=True)
class MessageRecord:
	id: int
	room_id: str
	user_id: str
	content: str
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "MessageRecord":
		return cls(
			id=int(record["id"]),
			room_id=str(record["room_id"]),
			user_id=str(record["user_id"]),
			content=record["content"],
			created_at=record["created_at"],
		)
