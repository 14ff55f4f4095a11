"""Pydantic schemas for declarations, alerts and global stats."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DeclareRequest(BaseModel):
	partner: Optional[str] = Field(default=None, description="Partner email or phone, normalised server side")
	intent: Optional[str] = Field(default=None, description="exclusive, casual or unspecified")


class DeclareResponse(BaseModel):
	ok: bool = True
	overlap: bool


class AlertOut(BaseModel):
	id: str
	status: Literal["new", "read"]
	created_at: datetime
	partner_hint: str
	room_id: Optional[str] = None
	locked: bool
	overlap_count: Optional[int] = None
	intents: Optional[List[str]] = None
	last_active: Optional[datetime] = None
	upgrade_prompt: Optional[str] = None


class AlertListResponse(BaseModel):
	alerts: List[AlertOut]
	is_pro: bool


class MarkReadResponse(BaseModel):
	ok: bool = True
	updated: int


class GlobalStatsResponse(BaseModel):
	total_overlaps: int
	total_declarations: int


class AlertNewPayload(BaseModel):
	partner_hint: str
	created_at: datetime
