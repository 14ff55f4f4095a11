"""Profile records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

NICKNAME_MAX_LENGTH = 40


@dataclass(slots=True)
class ProfileRecord:
	user_id: str
	nickname: Optional[str]
	is_pro: bool
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "ProfileRecord":
		return cls(
			user_id=str(record["user_id"]),
			nickname=record["nickname"],
			is_pro=bool(record["is_pro"]),
			created_at=record["created_at"],
		)
