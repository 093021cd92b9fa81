"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from roomie.infra.redis import redis_client
from roomie.settings import settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name}


@router.get("/health")
async def health_ready() -> Response:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=0.5)
	except Exception as exc:
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return JSONResponse(
			content={"status": "degraded", "redis": {"ok": False, "error": str(exc)}},
			status_code=503,
		)
	latency_ms = round((perf_counter() - start) * 1000, 2)
	return JSONResponse(content={"status": "ok", "redis": {"ok": True, "latency_ms": latency_ms}})


@router.get("/metrics")
async def metrics_endpoint() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
