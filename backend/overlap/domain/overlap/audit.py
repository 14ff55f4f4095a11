"""Audit and metric helpers for declarations and overlap fanout."""

from __future__ import annotations

import logging
from typing import Dict

from overlap.infra.redis import redis_client
from overlap.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_STREAM = "x:overlap.events"
_STREAM_MAXLEN = 10_000


async def log_overlap_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await redis_client.xadd(_STREAM, payload, maxlen=_STREAM_MAXLEN, approximate=True)
	except Exception:
		logger.warning("overlap audit append failed", extra={"event": event}, exc_info=True)


def inc_declaration(result: str) -> None:
	obs_metrics.inc_declaration(result)


def inc_overlap_detected() -> None:
	obs_metrics.inc_overlap_detected()


def inc_alerts_created(count: int) -> None:
	obs_metrics.inc_alerts_created(count)


def inc_fanout_failure(step: str) -> None:
	obs_metrics.inc_fanout_failure(step)


def inc_alerts_read(count: int) -> None:
	obs_metrics.inc_alerts_read(count)
