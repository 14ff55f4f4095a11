"""Contact normalisation and salted pseudonymisation.

A partner is only ever stored as ``sha256(salt | normalised_contact)``. The same
salt and contact always produce the same key, which is what lets independent
declarations collide; rotating the salt breaks every earlier match.
"""

from __future__ import annotations

import hashlib
import re
from typing import Optional

from overlap.domain.common.errors import ConfigurationFailure
from overlap.settings import settings

_SEPARATOR = "|"
_STRIP_RE = re.compile(r"[\s-]+")


def normalize_contact(raw: str) -> str:
	"""Trim, lower-case and drop whitespace and hyphens from an email or phone."""
	return _STRIP_RE.sub("", raw.strip().lower())


def require_salt() -> str:
	salt = settings.hash_salt
	if not salt or not salt.strip():
		raise ConfigurationFailure("hash_salt_missing")
	return salt


def hash_partner(normalized: str, *, salt: Optional[str] = None) -> str:
	secret = salt if salt is not None else require_salt()
	return hashlib.sha256(f"{secret}{_SEPARATOR}{normalized}".encode("utf-8")).hexdigest()


def partner_key(raw: str) -> str:
	return hash_partner(normalize_contact(raw))


def partner_hint(digest: str) -> str:
	"""Short, non-reversible cue for the UI: first 6 and last 4 hex chars."""
	if len(digest) <= 10:
		return "unknown"
	return f"{digest[:6]}...{digest[-4:]}"


def room_alias(room_id: str, user_id: str) -> str:
	"""Per-room pseudonym for a chat participant, unlinkable across rooms."""
	value = f"{require_salt()}{_SEPARATOR}{room_id}{_SEPARATOR}{user_id}"
	return hashlib.sha256(value.encode("utf-8")).hexdigest()[:8]
