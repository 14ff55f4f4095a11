"""Corrective re-scan of overlapping partner keys.

Declarations commit before their fanout runs, so a crash or storage error can
leave an overlap without alerts or a chat room. Re-running the fanout for every
key with at least two declarers completes that work; every step is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from overlap.domain.overlap.repo import OverlapRepository
from overlap.domain.overlap.service import OverlapService
from overlap.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_BATCH = 200


@dataclass(slots=True)
class RescanReport:
	partners: int = 0
	alerts_created: int = 0
	failures: List[str] = field(default_factory=list)


async def rescan_overlaps(
	*,
	repository: OverlapRepository,
	service: Optional[OverlapService] = None,
	batch: int = DEFAULT_BATCH,
) -> RescanReport:
	service = service or OverlapService(repository=repository)
	report = RescanReport()
	cursor: Optional[str] = None
	size = max(1, int(batch))
	while True:
		page = await repository.overlapping_partners(cursor, size)
		for partner_id, partner_hash in page:
			fanout = await service.fan_out(partner_id, partner_hash)
			obs_metrics.inc_rescan_partner()
			report.partners += 1
			report.alerts_created += len(fanout.created_user_ids)
			report.failures.extend(f"{partner_id}:{step}" for step in fanout.failures)
		if len(page) < size:
			break
		cursor = page[-1][0]
	logger.info(
		"overlap rescan finished",
		extra={
			"partners": report.partners,
			"alerts_created": report.alerts_created,
			"failures": len(report.failures),
		},
	)
	return report
