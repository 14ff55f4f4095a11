"""FastAPI endpoints for declarations, alerts and global stats."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from overlap.domain.common.errors import ConfigurationFailure, DomainError, InvalidInput, StorageFailure
from overlap.domain.overlap import schemas
from overlap.domain.overlap.service import OverlapService
from overlap.infra.auth import AuthenticatedUser, get_current_user
from overlap.infra.rate_limit import RateLimitExceeded

router = APIRouter(tags=["overlap"])
_service = OverlapService()

logger = logging.getLogger(__name__)


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, InvalidInput):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	if isinstance(exc, RateLimitExceeded):
		return HTTPException(status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.reason)
	if isinstance(exc, ConfigurationFailure):
		logger.error("overlap request rejected by configuration", exc_info=exc)
		return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=ConfigurationFailure.reason)
	if isinstance(exc, StorageFailure):
		logger.error("overlap request failed in storage (%s)", exc.operation, exc_info=exc)
		return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=StorageFailure.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=getattr(exc, "reason", "invalid_input"))


@router.post("/declare", response_model=schemas.DeclareResponse)
async def declare_endpoint(
	payload: schemas.DeclareRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.DeclareResponse:
	try:
		outcome = await _service.declare(auth_user, payload.partner, payload.intent)
	except (DomainError, RateLimitExceeded) as exc:
		raise _map_error(exc) from None
	return schemas.DeclareResponse(ok=True, overlap=outcome.overlap)


@router.get("/alerts", response_model=schemas.AlertListResponse)
async def list_alerts_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.AlertListResponse:
	try:
		alerts, is_pro = await _service.list_alerts(auth_user)
	except DomainError as exc:
		raise _map_error(exc) from None
	return schemas.AlertListResponse(alerts=alerts, is_pro=is_pro)


@router.post("/alerts/read", response_model=schemas.MarkReadResponse)
async def mark_alerts_read_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MarkReadResponse:
	try:
		updated = await _service.mark_all_read(auth_user)
	except DomainError as exc:
		raise _map_error(exc) from None
	return schemas.MarkReadResponse(ok=True, updated=updated)


@router.get("/stats", response_model=schemas.GlobalStatsResponse)
async def global_stats_endpoint() -> schemas.GlobalStatsResponse:
	try:
		stats = await _service.global_stats()
	except DomainError as exc:
		raise _map_error(exc) from None
	return schemas.GlobalStatsResponse(
		total_overlaps=stats.total_overlaps,
		total_declarations=stats.total_declarations,
	)
