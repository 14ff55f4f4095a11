"""FastAPI endpoints for the caller's own profile and access tier."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from overlap.domain.common.errors import DomainError, InvalidInput, StorageFailure
from overlap.domain.profiles import schemas
from overlap.domain.profiles.exceptions import UpgradeDisabled
from overlap.domain.profiles.service import ProfileService
from overlap.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["profile"])
_service = ProfileService()

logger = logging.getLogger(__name__)


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, InvalidInput):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	if isinstance(exc, UpgradeDisabled):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.reason)
	if isinstance(exc, StorageFailure):
		logger.error("profile request failed in storage (%s)", exc.operation, exc_info=exc)
		return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=StorageFailure.reason)
	return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=getattr(exc, "reason", "internal_error"))


@router.get("/profile", response_model=schemas.ProfileEnvelope)
async def get_profile_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileEnvelope:
	try:
		return await _service.get_profile(auth_user)
	except DomainError as exc:
		raise _map_error(exc) from None


@router.post("/profile", response_model=schemas.OkResponse)
async def update_profile_endpoint(
	payload: schemas.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.OkResponse:
	try:
		await _service.update_nickname(auth_user, payload.nickname)
	except DomainError as exc:
		raise _map_error(exc) from None
	return schemas.OkResponse(ok=True)


@router.post("/upgrade", response_model=schemas.UpgradeResponse)
async def upgrade_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.UpgradeResponse:
	try:
		is_pro = await _service.toggle_tier(auth_user)
	except DomainError as exc:
		raise _map_error(exc) from None
	return schemas.UpgradeResponse(is_pro=is_pro)
