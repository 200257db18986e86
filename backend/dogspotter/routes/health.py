"""
Dog Spotter Backend — Health Check Route
=========================================

What:  GET /health for container probes and monitoring.
How:   SELECT 1 against the database and GET /health against the ML service.

Status levels:
    - healthy:   database and classifier reachable
    - degraded:  database reachable, classifier down or circuit open
                 (dogs can still be reported, just without predicted breeds)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request

from dogspotter import __version__
from dogspotter.database import ping_database
from dogspotter.schemas.common import HealthResponse
from dogspotter.services.ml_service import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    db_status = "connected"
    ml_status = "available"
    overall = "healthy"

    try:
        await ping_database()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    predictor = request.app.state.dog_service.predictor
    breaker = getattr(predictor, "circuit_breaker", None)
    if predictor is None:
        ml_status = "unavailable"
    elif breaker is not None and breaker.state == CircuitBreaker.OPEN:
        ml_status = "circuit_open"
    elif not await predictor.health_check():
        ml_status = "unavailable"

    if ml_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        ml_service=ml_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
