"""Domain-level exceptions for declarations, alerts and overlap detection."""

from __future__ import annotations

from overlap.domain.common.errors import (  # noqa: F401
	ConfigurationFailure,
	DomainError,
	InvalidInput,
	StorageFailure,
)
from overlap.infra.rate_limit import RateLimitExceeded


class PartnerRequired(InvalidInput):
	reason = "partner_required"


class IntentInvalid(InvalidInput):
	reason = "intent_invalid"


class RateLimited(RateLimitExceeded):
	"""Raised when a caller exceeds a per-user operation budget."""
