"""Access tier gate for overlap statistics.

Pro users see aggregate facts about the *other* declarers of a partner key:
how many there are, which intents they chose and when the latest one declared.
Everyone else gets a locked placeholder. Neither view names another user.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from overlap.domain.overlap.models import Declaration

UPGRADE_PROMPT = "Upgrade to Pro to see how many others declared, their intents and latest activity."


@dataclass(slots=True)
class OverlapStats:
	count: int = 0
	intents: Tuple[str, ...] = ()
	last_active: Optional[datetime] = None


@dataclass(slots=True)
class TierView:
	locked: bool
	overlap_count: Optional[int] = None
	intents: Optional[list[str]] = None
	last_active: Optional[datetime] = None
	upgrade_prompt: Optional[str] = None


def aggregate_others(declarations: Iterable[Declaration], requester_id: str) -> Dict[str, OverlapStats]:
	"""Fold declaration rows into per-partner stats, skipping the requester's own rows."""
	counts: Dict[str, int] = {}
	intents: Dict[str, set[str]] = {}
	latest: Dict[str, datetime] = {}
	for row in declarations:
		if row.user_id == requester_id:
			continue
		pid = row.partner_id
		counts[pid] = counts.get(pid, 0) + 1
		bucket = intents.setdefault(pid, set())
		if row.intent:
			bucket.add(row.intent)
		previous = latest.get(pid)
		if previous is None or row.created_at > previous:
			latest[pid] = row.created_at
	return {
		pid: OverlapStats(count=count, intents=tuple(sorted(intents[pid])), last_active=latest.get(pid))
		for pid, count in counts.items()
	}


def gate(is_pro: bool, stats: Optional[OverlapStats]) -> TierView:
	if not is_pro:
		return TierView(locked=True, upgrade_prompt=UPGRADE_PROMPT)
	stats = stats or OverlapStats()
	return TierView(
		locked=False,
		overlap_count=stats.count,
		intents=list(stats.intents),
		last_active=stats.last_active,
	)
