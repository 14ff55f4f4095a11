"""Domain models for partners, declarations and alerts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

# Distinct declarers needed on one partner key before anyone is alerted.
OVERLAP_THRESHOLD = 2


class Intent(str, Enum):
	"""Self-reported nature of a declared relationship."""

	EXCLUSIVE = "exclusive"
	CASUAL = "casual"
	UNSPECIFIED = "unspecified"


class AlertStatus(str, Enum):
	NEW = "new"
	READ = "read"


@dataclass(slots=True)
class Declaration:
	user_id: str
	partner_id: str
	intent: Optional[str]
	created_at: datetime


@dataclass(slots=True)
class AlertRecord:
	"""An alert row joined with its partner key and chat room, if any."""

	id: str
	user_id: str
	partner_id: str
	partner_hash: str
	status: AlertStatus
	created_at: datetime
	room_id: Optional[str] = None

	@classmethod
	def from_record(cls, record) -> "AlertRecord":
		room_id = record.get("room_id")
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			partner_id=str(record["partner_id"]),
			partner_hash=str(record["partner_hash"]),
			status=AlertStatus(record["status"]),
			created_at=record["created_at"],
			room_id=str(room_id) if room_id else None,
		)


@dataclass(slots=True)
class FanoutReport:
	alerted_user_ids: Tuple[str, ...] = ()
	created_user_ids: Tuple[str, ...] = ()
	failures: Tuple[str, ...] = ()
	room_id: Optional[str] = None


@dataclass(slots=True)
class DeclarationOutcome:
	partner_id: str
	created: bool
	declarer_count: int
	fanout: FanoutReport = field(default_factory=FanoutReport)

	@property
	def overlap(self) -> bool:
		return self.declarer_count >= OVERLAP_THRESHOLD


@dataclass(slots=True)
class GlobalStats:
	total_overlaps: int
	total_declarations: int
