"""Liveness, readiness and startup probes.

Readiness needs redis (rate limits, stats cache), postgres and a schema at
least as new as ``HEALTH_MIN_MIGRATION``. Startup only needs the hash salt.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Tuple

from overlap.domain.common.errors import ConfigurationFailure
from overlap.domain.overlap import hashing
from overlap.infra import postgres
from overlap.infra.redis import redis_client
from overlap.obs import metrics
from overlap.settings import settings

LOGGER = logging.getLogger(__name__)

Check = Dict[str, Any]

_LATEST_MIGRATION_SQL = "SELECT version FROM schema_migrations ORDER BY version DESC LIMIT 1"


async def _timed(
	name: str,
	probe: Callable[[], Awaitable[Any]],
	timeout: float,
	mark: Callable[..., None],
) -> Check:
	start = perf_counter()
	try:
		await asyncio.wait_for(probe(), timeout=timeout)
	except Exception as exc:
		mark(False)
		LOGGER.warning("%s readiness check failed", name, exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	latency = perf_counter() - start
	mark(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def _select_one(pool) -> None:
	async with pool.acquire() as conn:
		await conn.execute("SELECT 1")


async def _schema_check(pool, required: str) -> Check:
	try:
		async with pool.acquire() as conn:
			version = await conn.fetchval(_LATEST_MIGRATION_SQL)
	except Exception as exc:
		return {"ok": False, "error": type(exc).__name__}
	if version is None:
		return {"ok": False, "error": "no_migrations"}
	# versions are zero-padded file prefixes, so string order is numeric order
	current = str(version)
	return {"ok": current >= required, "version": current, "required": required}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks: Dict[str, Check] = {
		"redis": await _timed("redis", lambda: redis_client.ping(), 0.2, metrics.mark_redis),
	}
	try:
		pool = await postgres.get_pool()
	except Exception as exc:
		metrics.mark_postgres(False)
		LOGGER.warning("postgres pool unavailable", exc_info=True)
		checks["postgres"] = {"ok": False, "error": type(exc).__name__}
		checks["migrations"] = {"ok": False, "error": "pool_unavailable"}
	else:
		checks["postgres"] = await _timed("postgres", lambda: _select_one(pool), 0.3, metrics.mark_postgres)
		checks["migrations"] = await _schema_check(pool, settings.health_min_migration)
	ok = all(check.get("ok") for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}


async def startup() -> Tuple[int, Dict[str, Any]]:
	try:
		hashing.require_salt()
	except ConfigurationFailure as exc:
		return 503, {"status": "error", "error": exc.reason}
	return 200, {"status": "ok"}
