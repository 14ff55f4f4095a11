"""Profile flows: lazy creation, nickname edits and the demo tier toggle."""

from __future__ import annotations

import logging
from typing import Optional

from overlap.domain.profiles.exceptions import NicknameTooLong, UpgradeDisabled
from overlap.domain.profiles.models import NICKNAME_MAX_LENGTH
from overlap.domain.profiles.repo import PostgresProfileRepository, ProfileRepository
from overlap.domain.profiles.schemas import ProfileEnvelope, ProfileOut, ProfileUser
from overlap.infra.auth import AuthenticatedUser
from overlap.obs import metrics as obs_metrics
from overlap.settings import settings

logger = logging.getLogger(__name__)


def _clean_nickname(raw: Optional[str]) -> Optional[str]:
	value = (raw or "").strip()
	if not value:
		return None
	if len(value) > NICKNAME_MAX_LENGTH:
		raise NicknameTooLong()
	return value


class ProfileService:
	def __init__(self, repository: ProfileRepository | None = None) -> None:
		self._repo = repository or PostgresProfileRepository()

	async def ensure_profile(self, user_id: str) -> None:
		"""Create the caller's profile row on first authenticated use; a no-op afterwards."""
		await self._repo.ensure(user_id)

	async def get_profile(self, user: AuthenticatedUser) -> ProfileEnvelope:
		await self._repo.ensure(user.id)
		record = await self._repo.get(user.id)
		profile = None
		if record is not None:
			profile = ProfileOut(nickname=record.nickname, is_pro=record.is_pro, created_at=record.created_at)
		return ProfileEnvelope(profile=profile, user=ProfileUser(id=user.id, email=user.email))

	async def update_nickname(self, user: AuthenticatedUser, nickname: Optional[str]) -> None:
		await self._repo.set_nickname(user.id, _clean_nickname(nickname))

	async def toggle_tier(self, user: AuthenticatedUser) -> bool:
		if not settings.tier_toggle_enabled:
			raise UpgradeDisabled()
		await self._repo.ensure(user.id)
		is_pro = await self._repo.toggle_pro(user.id)
		obs_metrics.inc_tier_toggle(is_pro)
		logger.info("access tier toggled", extra={"user_id": user.id, "is_pro": is_pro})
		return is_pro

	async def is_pro(self, user_id: str) -> bool:
		return await self._repo.is_pro(user_id)
