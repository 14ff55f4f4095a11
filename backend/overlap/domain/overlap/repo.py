"""Postgres persistence for partners, declarations, alerts and chat rooms.

Cross-user invariants live in unique constraints, never in process locks:
``partners.hash``, ``declarations(user_id, partner_id)``,
``alerts(user_id, partner_id)`` and ``chat_rooms.partner_hash``. Every write
is an insert-or-ignore, so callers can retry any of them safely.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

from overlap.domain.common.errors import StorageFailure
from overlap.domain.common.storage import PostgresRepository
from overlap.domain.overlap.models import (
	OVERLAP_THRESHOLD,
	AlertRecord,
	Declaration,
	GlobalStats,
)


class OverlapRepository(Protocol):
	async def resolve_partner(self, partner_hash: str) -> str:
		...

	async def insert_declaration(self, user_id: str, partner_id: str, intent: Optional[str]) -> bool:
		...

	async def count_declarers(self, partner_id: str) -> int:
		...

	async def list_declarers(self, partner_id: str) -> List[str]:
		...

	async def upsert_alert(self, user_id: str, partner_id: str) -> bool:
		...

	async def ensure_chat_room(self, partner_hash: str) -> str:
		...

	async def list_alerts(self, user_id: str) -> List[AlertRecord]:
		...

	async def declarations_for_partners(self, partner_ids: Sequence[str], exclude_user_id: str) -> List[Declaration]:
		...

	async def mark_all_read(self, user_id: str) -> int:
		...

	async def global_stats(self) -> GlobalStats:
		...

	async def overlapping_partners(self, after_id: Optional[str], limit: int) -> List[Tuple[str, str]]:
		...


_SELECT_PARTNER_SQL = "SELECT id FROM partners WHERE hash = $1"

_SELECT_ROOM_SQL = "SELECT id FROM chat_rooms WHERE partner_hash = $1"


class PostgresOverlapRepository(PostgresRepository):
	async def resolve_partner(self, partner_hash: str) -> str:
		async with self._connection("resolve_partner") as conn:
			row = await conn.fetchrow(_SELECT_PARTNER_SQL, partner_hash)
			if row:
				return str(row["id"])
			row = await conn.fetchrow(
				"""
				INSERT INTO partners (hash)
				VALUES ($1)
				ON CONFLICT (hash) DO NOTHING
				RETURNING id
				""",
				partner_hash,
			)
			if row:
				return str(row["id"])
			# A concurrent first declaration won the unique index; read its row.
			row = await conn.fetchrow(_SELECT_PARTNER_SQL, partner_hash)
		if not row:
			raise StorageFailure("resolve_partner")
		return str(row["id"])

	async def insert_declaration(self, user_id: str, partner_id: str, intent: Optional[str]) -> bool:
		async with self._connection("insert_declaration") as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO declarations (user_id, partner_id, intent)
				VALUES ($1, $2, $3)
				ON CONFLICT (user_id, partner_id) DO NOTHING
				RETURNING id
				""",
				user_id,
				partner_id,
				intent,
			)
		return row is not None

	async def count_declarers(self, partner_id: str) -> int:
		async with self._connection("count_declarers") as conn:
			count = await conn.fetchval(
				"SELECT COUNT(*) FROM declarations WHERE partner_id = $1",
				partner_id,
			)
		return int(count or 0)

	async def list_declarers(self, partner_id: str) -> List[str]:
		async with self._connection("list_declarers") as conn:
			rows = await conn.fetch(
				"SELECT user_id FROM declarations WHERE partner_id = $1 ORDER BY created_at ASC",
				partner_id,
			)
		return [str(row["user_id"]) for row in rows]

	async def upsert_alert(self, user_id: str, partner_id: str) -> bool:
		# DO NOTHING keeps an existing alert's status; a read alert never flips back to new.
		async with self._connection("upsert_alert") as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO alerts (user_id, partner_id, status)
				VALUES ($1, $2, 'new')
				ON CONFLICT (user_id, partner_id) DO NOTHING
				RETURNING id
				""",
				user_id,
				partner_id,
			)
		return row is not None

	async def ensure_chat_room(self, partner_hash: str) -> str:
		async with self._connection("ensure_chat_room") as conn:
			row = await conn.fetchrow(_SELECT_ROOM_SQL, partner_hash)
			if row:
				return str(row["id"])
			row = await conn.fetchrow(
				"""
				INSERT INTO chat_rooms (partner_hash)
				VALUES ($1)
				ON CONFLICT (partner_hash) DO NOTHING
				RETURNING id
				""",
				partner_hash,
			)
			if row:
				return str(row["id"])
			row = await conn.fetchrow(_SELECT_ROOM_SQL, partner_hash)
		if not row:
			raise StorageFailure("ensure_chat_room")
		return str(row["id"])

	async def list_alerts(self, user_id: str) -> List[AlertRecord]:
		async with self._connection("list_alerts") as conn:
			rows = await conn.fetch(
				"""
				SELECT a.id, a.user_id, a.partner_id, a.status, a.created_at,
					p.hash AS partner_hash,
					r.id AS room_id
				FROM alerts a
				JOIN partners p ON p.id = a.partner_id
				LEFT JOIN chat_rooms r ON r.partner_hash = p.hash
				WHERE a.user_id = $1
				ORDER BY a.created_at DESC, a.id DESC
				""",
				user_id,
			)
		return [AlertRecord.from_record(row) for row in rows]

	async def declarations_for_partners(self, partner_ids: Sequence[str], exclude_user_id: str) -> List[Declaration]:
		if not partner_ids:
			return []
		async with self._connection("declarations_for_partners") as conn:
			rows = await conn.fetch(
				"""
				SELECT user_id, partner_id, intent, created_at
				FROM declarations
				WHERE partner_id = ANY($1::uuid[])
				  AND user_id <> $2
				""",
				list(partner_ids),
				exclude_user_id,
			)
		return [
			Declaration(
				user_id=str(row["user_id"]),
				partner_id=str(row["partner_id"]),
				intent=row["intent"],
				created_at=row["created_at"],
			)
			for row in rows
		]

	async def mark_all_read(self, user_id: str) -> int:
		async with self._connection("mark_all_read") as conn:
			rows = await conn.fetch(
				"""
				UPDATE alerts
				SET status = 'read'
				WHERE user_id = $1 AND status = 'new'
				RETURNING 1
				""",
				user_id,
			)
		return len(rows)

	async def global_stats(self) -> GlobalStats:
		async with self._connection("global_stats") as conn:
			row = await conn.fetchrow(
				"""
				SELECT
					(SELECT COUNT(*) FROM declarations) AS total_declarations,
					(
						SELECT COUNT(*) FROM (
							SELECT partner_id
							FROM declarations
							GROUP BY partner_id
							HAVING COUNT(*) >= $1
						) overlapping
					) AS total_overlaps
				""",
				OVERLAP_THRESHOLD,
			)
		return GlobalStats(
			total_overlaps=int(row["total_overlaps"] or 0),
			total_declarations=int(row["total_declarations"] or 0),
		)

	async def overlapping_partners(self, after_id: Optional[str], limit: int) -> List[Tuple[str, str]]:
		async with self._connection("overlapping_partners") as conn:
			rows = await conn.fetch(
				"""
				SELECT p.id, p.hash
				FROM partners p
				JOIN declarations d ON d.partner_id = p.id
				WHERE ($1::uuid IS NULL OR p.id > $1::uuid)
				GROUP BY p.id, p.hash
				HAVING COUNT(*) >= $2
				ORDER BY p.id
				LIMIT $3
				""",
				after_id,
				OVERLAP_THRESHOLD,
				limit,
			)
		return [(str(row["id"]), str(row["hash"])) for row in rows]
