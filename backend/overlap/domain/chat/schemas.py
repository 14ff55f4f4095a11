"""Pydantic schemas for anonymous chat rooms."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
	content: str = Field(..., description="Message body; trimmed server side")


class ChatMessageOut(BaseModel):
	id: int
	room_id: str
	author: str = Field(..., description="Per-room pseudonym of the sender")
	content: str
	created_at: datetime
	mine: bool = False


class ChatPage(BaseModel):
	items: List[ChatMessageOut]
	you: str = Field(..., description="The requester's own alias in this room")
	next_cursor: Optional[int] = None
