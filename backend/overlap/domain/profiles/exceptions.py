"""Profile validation errors."""

from __future__ import annotations

from overlap.domain.common.errors import DomainError, InvalidInput


class NicknameTooLong(InvalidInput):
	reason = "nickname_too_long"


class UpgradeDisabled(DomainError):
	"""The demo tier toggle is switched off for this deployment."""

	reason = "upgrade_disabled"
