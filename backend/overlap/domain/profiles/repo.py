"""Postgres persistence for per-user profiles."""

from __future__ import annotations

from typing import Optional, Protocol

from overlap.domain.common.errors import StorageFailure
from overlap.domain.common.storage import PostgresRepository
from overlap.domain.profiles.models import ProfileRecord


class ProfileRepository(Protocol):
	async def ensure(self, user_id: str) -> None:
		...

	async def get(self, user_id: str) -> Optional[ProfileRecord]:
		...

	async def set_nickname(self, user_id: str, nickname: Optional[str]) -> None:
		...

	async def toggle_pro(self, user_id: str) -> bool:
		...

	async def is_pro(self, user_id: str) -> bool:
		...


class PostgresProfileRepository(PostgresRepository):
	async def ensure(self, user_id: str) -> None:
		async with self._connection("ensure_profile") as conn:
			await conn.execute(
				"""
				INSERT INTO profiles (user_id)
				VALUES ($1)
				ON CONFLICT (user_id) DO NOTHING
				""",
				user_id,
			)

	async def get(self, user_id: str) -> Optional[ProfileRecord]:
		async with self._connection("get_profile") as conn:
			row = await conn.fetchrow(
				"SELECT user_id, nickname, is_pro, created_at FROM profiles WHERE user_id = $1",
				user_id,
			)
		return ProfileRecord.from_record(row) if row else None

	async def set_nickname(self, user_id: str, nickname: Optional[str]) -> None:
		async with self._connection("set_nickname") as conn:
			await conn.execute(
				"""
				INSERT INTO profiles (user_id, nickname)
				VALUES ($1, $2)
				ON CONFLICT (user_id)
				DO UPDATE SET nickname = EXCLUDED.nickname, updated_at = NOW()
				""",
				user_id,
				nickname,
			)

	async def toggle_pro(self, user_id: str) -> bool:
		async with self._connection("toggle_pro") as conn:
			value = await conn.fetchval(
				"""
				UPDATE profiles
				SET is_pro = NOT is_pro, updated_at = NOW()
				WHERE user_id = $1
				RETURNING is_pro
				""",
				user_id,
			)
		if value is None:
			raise StorageFailure("toggle_pro")
		return bool(value)

	async def is_pro(self, user_id: str) -> bool:
		async with self._connection("is_pro") as conn:
			value = await conn.fetchval("SELECT is_pro FROM profiles WHERE user_id = $1", user_id)
		return bool(value)
