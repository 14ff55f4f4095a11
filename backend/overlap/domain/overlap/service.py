"""Declaration intake, overlap detection and alert fanout.

A declaration is stored once per (user, partner key). When a partner key has at
least two distinct declarers every declarer gets an alert and the key gets one
anonymous chat room. All cross-user steps are idempotent inserts, so a partial
fanout is repaired by the next declaration on the same key or by a rescan.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from redis.exceptions import RedisError

from overlap.domain.common.errors import StorageFailure
from overlap.domain.overlap import audit, hashing, sockets, tiers
from overlap.domain.overlap.exceptions import IntentInvalid, PartnerRequired, RateLimited
from overlap.domain.overlap.models import DeclarationOutcome, FanoutReport, GlobalStats, Intent
from overlap.domain.overlap.repo import OverlapRepository, PostgresOverlapRepository
from overlap.domain.overlap.schemas import AlertNewPayload, AlertOut
from overlap.domain.profiles.service import ProfileService
from overlap.infra import rate_limit
from overlap.infra.auth import AuthenticatedUser
from overlap.infra.redis import redis_client
from overlap.obs import metrics as obs_metrics
from overlap.settings import settings

logger = logging.getLogger(__name__)

_STATS_CACHE_KEY = "stats:global"
_INTENTS = {item.value for item in Intent}


def _clean_intent(raw: Optional[str]) -> Optional[str]:
	value = (raw or "").strip().lower()
	if not value:
		return None
	if value not in _INTENTS:
		raise IntentInvalid()
	return value


class OverlapService:
	def __init__(
		self,
		repository: OverlapRepository | None = None,
		profiles: ProfileService | None = None,
	) -> None:
		self._repo = repository or PostgresOverlapRepository()
		self._profiles = profiles or ProfileService()

	async def declare(
		self,
		user: AuthenticatedUser,
		partner: Optional[str],
		intent: Optional[str] = None,
	) -> DeclarationOutcome:
		normalized = hashing.normalize_contact(partner or "")
		if not normalized:
			raise PartnerRequired()
		clean_intent = _clean_intent(intent)
		try:
			allowed = await rate_limit.allow("declare", user.id, limit=settings.declare_rate_per_minute)
		except RedisError as exc:
			raise StorageFailure("rate_limit") from exc
		if not allowed:
			obs_metrics.inc_rate_limited("declare")
			raise RateLimited()

		await self._profiles.ensure_profile(user.id)
		partner_hash = hashing.hash_partner(normalized)
		partner_id = await self._repo.resolve_partner(partner_hash)
		created = await self._repo.insert_declaration(user.id, partner_id, clean_intent)
		audit.inc_declaration("created" if created else "duplicate")
		declarer_count = await self._repo.count_declarers(partner_id)
		outcome = DeclarationOutcome(partner_id=partner_id, created=created, declarer_count=declarer_count)
		if outcome.overlap:
			audit.inc_overlap_detected()
			outcome.fanout = await self.fan_out(partner_id, partner_hash)
		logger.info(
			"declaration recorded",
			extra={
				"user_id": user.id,
				"partner_id": partner_id,
				"new_declaration": created,
				"overlap": outcome.overlap,
			},
		)
		return outcome

	async def fan_out(self, partner_id: str, partner_hash: str) -> FanoutReport:
		"""Alert every current declarer of ``partner_id`` and make sure its chat room exists.

		Each step is attempted independently. Failures are logged, counted and
		reported back, never raised: a later pass on the same key completes them.
		"""
		failures: List[str] = []
		try:
			declarers = await self._repo.list_declarers(partner_id)
		except Exception:
			logger.exception("overlap fanout could not list declarers", extra={"partner_id": partner_id})
			audit.inc_fanout_failure("list_declarers")
			return FanoutReport(failures=("list_declarers",))

		alerted: List[str] = []
		created: List[str] = []
		for user_id in declarers:
			try:
				inserted = await self._repo.upsert_alert(user_id, partner_id)
			except Exception:
				logger.exception("alert upsert failed", extra={"partner_id": partner_id, "user_id": user_id})
				audit.inc_fanout_failure("upsert_alert")
				failures.append(f"upsert_alert:{user_id}")
				continue
			alerted.append(user_id)
			if inserted:
				created.append(user_id)
		if created:
			audit.inc_alerts_created(len(created))

		room_id: Optional[str] = None
		try:
			room_id = await self._repo.ensure_chat_room(partner_hash)
		except Exception:
			logger.exception("chat room creation failed", extra={"partner_id": partner_id})
			audit.inc_fanout_failure("ensure_chat_room")
			failures.append("ensure_chat_room")

		await self._notify(created, partner_hash)
		await audit.log_overlap_event(
			"overlap.fanout",
			{
				"partner_id": partner_id,
				"alerted": str(len(alerted)),
				"created": str(len(created)),
				"failures": str(len(failures)),
			},
		)
		return FanoutReport(
			alerted_user_ids=tuple(alerted),
			created_user_ids=tuple(created),
			failures=tuple(failures),
			room_id=room_id,
		)

	async def _notify(self, user_ids: List[str], partner_hash: str) -> None:
		if not user_ids:
			return
		payload = AlertNewPayload(
			partner_hint=hashing.partner_hint(partner_hash),
			created_at=datetime.now(timezone.utc),
		).model_dump(mode="json")
		for user_id in user_ids:
			try:
				await sockets.emit_alert_new(user_id, payload)
			except Exception:
				logger.warning("alert:new emit failed", extra={"user_id": user_id}, exc_info=True)

	async def list_alerts(self, user: AuthenticatedUser) -> tuple[List[AlertOut], bool]:
		await self._profiles.ensure_profile(user.id)
		records = await self._repo.list_alerts(user.id)
		is_pro = await self._profiles.is_pro(user.id)
		stats: dict[str, tiers.OverlapStats] = {}
		if is_pro and records:
			partner_ids = sorted({record.partner_id for record in records})
			rows = await self._repo.declarations_for_partners(partner_ids, user.id)
			stats = tiers.aggregate_others(rows, user.id)
		items: List[AlertOut] = []
		for record in records:
			view = tiers.gate(is_pro, stats.get(record.partner_id))
			items.append(
				AlertOut(
					id=record.id,
					status=record.status.value,
					created_at=record.created_at,
					partner_hint=hashing.partner_hint(record.partner_hash),
					room_id=record.room_id,
					locked=view.locked,
					overlap_count=view.overlap_count,
					intents=view.intents,
					last_active=view.last_active,
					upgrade_prompt=view.upgrade_prompt,
				)
			)
		return items, is_pro

	async def mark_all_read(self, user: AuthenticatedUser) -> int:
		updated = await self._repo.mark_all_read(user.id)
		if updated:
			audit.inc_alerts_read(updated)
		return updated

	async def global_stats(self) -> GlobalStats:
		"""Totals served from a short-lived redis cache; postgres answers when the cache cannot."""
		try:
			cached = await redis_client.hgetall(_STATS_CACHE_KEY)
		except RedisError:
			logger.warning("stats cache read failed", exc_info=True)
			cached = {}
		if cached:
			return GlobalStats(
				total_overlaps=int(cached.get("total_overlaps", 0)),
				total_declarations=int(cached.get("total_declarations", 0)),
			)
		stats = await self._repo.global_stats()
		ttl = max(0, int(settings.stats_cache_seconds))
		if ttl:
			try:
				async with redis_client.pipeline(transaction=True) as pipe:
					pipe.hset(
						_STATS_CACHE_KEY,
						mapping={
							"total_overlaps": stats.total_overlaps,
							"total_declarations": stats.total_declarations,
						},
					)
					pipe.expire(_STATS_CACHE_KEY, ttl)
					await pipe.execute()
			except RedisError:
				logger.warning("stats cache write failed", exc_info=True)
		return stats
