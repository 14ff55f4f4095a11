"""Pydantic schemas for the profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileOut(BaseModel):
	nickname: Optional[str] = None
	is_pro: bool = False
	created_at: datetime


class ProfileUser(BaseModel):
	id: str
	email: Optional[str] = None


class ProfileEnvelope(BaseModel):
	profile: Optional[ProfileOut] = None
	user: ProfileUser


class ProfileUpdateRequest(BaseModel):
	nickname: Optional[str] = Field(default=None, description="Display nickname; blank clears it")


class OkResponse(BaseModel):
	ok: bool = True


class UpgradeResponse(BaseModel):
	is_pro: bool
