"""FastAPI endpoints for anonymous overlap chat rooms."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from overlap.domain.chat.exceptions import RoomForbidden, RoomNotFound
from overlap.domain.chat.models import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from overlap.domain.chat.schemas import ChatMessageOut, ChatPage, SendMessageRequest
from overlap.domain.chat.service import ChatService
from overlap.domain.common.errors import DomainError, InvalidInput, StorageFailure
from overlap.infra.auth import AuthenticatedUser, get_current_user
from overlap.infra.rate_limit import RateLimitExceeded

router = APIRouter(prefix="/chat", tags=["chat"])
_service = ChatService()

logger = logging.getLogger(__name__)


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, InvalidInput):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	if isinstance(exc, RoomForbidden):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)
	if isinstance(exc, RoomNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, RateLimitExceeded):
		return HTTPException(status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.reason)
	if isinstance(exc, StorageFailure):
		logger.error("chat request failed in storage (%s)", exc.operation, exc_info=exc)
		return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=StorageFailure.reason)
	return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=getattr(exc, "reason", "internal_error"))


@router.get("/rooms/{room_id}/messages", response_model=ChatPage)
async def list_room_messages_endpoint(
	room_id: UUID,
	after: Optional[int] = Query(default=None, ge=0),
	limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ChatPage:
	try:
		return await _service.list_messages(auth_user, str(room_id), after=after, limit=limit)
	except DomainError as exc:
		raise _map_error(exc) from None


@router.post("/rooms/{room_id}/messages", response_model=ChatMessageOut, status_code=status.HTTP_201_CREATED)
async def post_room_message_endpoint(
	room_id: UUID,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ChatMessageOut:
	try:
		return await _service.post_message(auth_user, str(room_id), payload.content)
	except (DomainError, RateLimitExceeded) as exc:
		raise _map_error(exc) from None
