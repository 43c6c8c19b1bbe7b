"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness)
    - GET /api/v1/health/ready returns 503 if the database or its bus consumer is down

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from wiki.api.dependencies import get_gateway
from wiki.infrastructure.database import PersistenceGateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "healthy", "service": "wiki", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check(
    request: Request, gateway: PersistenceGateway | None = Depends(get_gateway),
):
    """Readiness probe — database connectivity and a live consumer."""
    db_ok = await gateway.health_check() if gateway else False
    bus = getattr(request.app.state, "bus", None)
    address = getattr(request.app.state, "wikidb_queue", None)
    bus_ok = bool(bus and address and bus.has_consumer(address))
    if not (db_ok and bus_ok):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": {
                    "database": "healthy" if db_ok else "unavailable",
                    "bus": "healthy" if bus_ok else "unavailable",
                },
            },
        )
    return {"status": "ready", "checks": {"database": "healthy", "bus": "healthy"}}
