"""Postgres persistence for chat rooms and their append-only messages."""

from __future__ import annotations

from typing import List, Optional, Protocol

from overlap.domain.chat.models import MessageRecord
from overlap.domain.common.errors import StorageFailure
from overlap.domain.common.storage import PostgresRepository


class ChatRepository(Protocol):
	async def room_exists(self, room_id: str) -> bool:
		...

	async def is_member(self, room_id: str, user_id: str) -> bool:
		...

	async def append_message(self, room_id: str, user_id: str, content: str) -> MessageRecord:
		...

	async def list_messages(self, room_id: str, *, after: Optional[int], limit: int) -> List[MessageRecord]:
		...


class PostgresChatRepository(PostgresRepository):
	async def room_exists(self, room_id: str) -> bool:
		async with self._connection("room_exists") as conn:
			value = await conn.fetchval("SELECT 1 FROM chat_rooms WHERE id = $1", room_id)
		return value is not None

	async def is_member(self, room_id: str, user_id: str) -> bool:
		async with self._connection("room_membership") as conn:
			value = await conn.fetchval(
				"""
				SELECT 1
				FROM chat_rooms r
				JOIN partners p ON p.hash = r.partner_hash
				JOIN alerts a ON a.partner_id = p.id
				WHERE r.id = $1 AND a.user_id = $2
				LIMIT 1
				""",
				room_id,
				user_id,
			)
		return value is not None

	async def append_message(self, room_id: str, user_id: str, content: str) -> MessageRecord:
		async with self._connection("append_message") as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO chat_messages (room_id, user_id, content)
				VALUES ($1, $2, $3)
				RETURNING id, room_id, user_id, content, created_at
				""",
				room_id,
				user_id,
				content,
			)
		if not row:
			raise StorageFailure("append_message")
		return MessageRecord.from_record(row)

	async def list_messages(self, room_id: str, *, after: Optional[int], limit: int) -> List[MessageRecord]:
		async with self._connection("list_messages") as conn:
			rows = await conn.fetch(
				"""
				SELECT id, room_id, user_id, content, created_at
				FROM chat_messages
				WHERE room_id = $1
				  AND ($2::bigint IS NULL OR id > $2::bigint)
				ORDER BY id ASC
				LIMIT $3
				""",
				room_id,
				after,
				limit,
			)
		return [MessageRecord.from_record(row) for row in rows]
