"""Anonymous chat between the declarers of one partner key.

A user may read or write a room only while they hold an alert for the partner
key the room belongs to. Authors are shown as per-room aliases, never as ids.
"""

from __future__ import annotations

import logging
from typing import Optional

from redis.exceptions import RedisError

from overlap.domain.chat import sockets
from overlap.domain.chat.exceptions import MessageEmpty, MessageTooLong, RoomForbidden, RoomNotFound
from overlap.domain.chat.models import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MessageRecord
from overlap.domain.chat.repo import ChatRepository, PostgresChatRepository
from overlap.domain.chat.schemas import ChatMessageOut, ChatPage
from overlap.domain.common.errors import StorageFailure
from overlap.domain.overlap import hashing
from overlap.domain.overlap.exceptions import RateLimited
from overlap.infra import rate_limit
from overlap.infra.auth import AuthenticatedUser
from overlap.obs import metrics as obs_metrics
from overlap.settings import settings

logger = logging.getLogger(__name__)


def _to_out(record: MessageRecord, viewer_id: Optional[str]) -> ChatMessageOut:
	return ChatMessageOut(
		id=record.id,
		room_id=record.room_id,
		author=hashing.room_alias(record.room_id, record.user_id),
		content=record.content,
		created_at=record.created_at,
		mine=viewer_id is not None and record.user_id == viewer_id,
	)


class ChatService:
	def __init__(self, repository: ChatRepository | None = None) -> None:
		self._repo = repository or PostgresChatRepository()

	async def ensure_member(self, user_id: str, room_id: str) -> None:
		if not await self._repo.room_exists(room_id):
			raise RoomNotFound()
		if not await self._repo.is_member(room_id, user_id):
			raise RoomForbidden()

	async def list_messages(
		self,
		user: AuthenticatedUser,
		room_id: str,
		*,
		after: Optional[int] = None,
		limit: int = DEFAULT_PAGE_SIZE,
	) -> ChatPage:
		await self.ensure_member(user.id, room_id)
		size = max(1, min(int(limit), MAX_PAGE_SIZE))
		records = await self._repo.list_messages(room_id, after=after, limit=size)
		items = [_to_out(record, user.id) for record in records]
		next_cursor = items[-1].id if len(items) == size else None
		return ChatPage(items=items, you=hashing.room_alias(room_id, user.id), next_cursor=next_cursor)

	async def post_message(self, user: AuthenticatedUser, room_id: str, content: str) -> ChatMessageOut:
		body = (content or "").strip()
		if not body:
			raise MessageEmpty()
		if len(body) > settings.chat_message_max_length:
			raise MessageTooLong()
		try:
			allowed = await rate_limit.allow("chat", user.id, limit=settings.chat_rate_per_minute)
		except RedisError as exc:
			raise StorageFailure("rate_limit") from exc
		if not allowed:
			obs_metrics.inc_rate_limited("chat")
			raise RateLimited()
		await self.ensure_member(user.id, room_id)
		record = await self._repo.append_message(room_id, user.id, body)
		obs_metrics.inc_chat_message()
		try:
			await sockets.emit_room_message(room_id, _to_out(record, None).model_dump(mode="json"))
		except Exception:
			logger.warning("chat:message emit failed", extra={"room_id": room_id}, exc_info=True)
		return _to_out(record, user.id)
