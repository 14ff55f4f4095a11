"""Operations endpoints providing health checks, metrics, and admin controls."""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from overlap.api import overlap as overlap_api
from overlap.domain.overlap.repo import PostgresOverlapRepository
from overlap.maintenance.rescan import rescan_overlaps
from overlap.obs import health
from overlap.settings import settings

router = APIRouter(prefix="", tags=["ops"])

logger = logging.getLogger(__name__)


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_admin(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	token = settings.obs_admin_token
	if not token:
		# No configured token means no admin access at all.
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	provided = _resolve_token(x_admin_token, authorization)
	if provided != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	await require_admin(x_admin_token=x_admin_token, authorization=authorization)


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> Response:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/health/startup")
async def health_startup() -> Response:
	status_code, payload = await health.startup()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


@router.post("/ops/rescan")
async def trigger_rescan(_: None = Depends(require_admin)) -> dict[str, int | str]:
	start = time.perf_counter()
	try:
		report = await rescan_overlaps(
			repository=PostgresOverlapRepository(),
			service=overlap_api._service,
		)
	except Exception as exc:
		logger.exception("overlap rescan failed")
		raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="rescan_failed") from exc
	return {
		"status": "ok",
		"partners": report.partners,
		"alerts_created": report.alerts_created,
		"failures": len(report.failures),
		"duration_ms": int((time.perf_counter() - start) * 1000),
	}
