"""Health Probes: liveness and database readiness.

Invariants:
    - GET /api/v1/health/ answers 200 while the process runs, without touching the DB
    - GET /api/v1/health/ready answers 503 until the engine exists and SELECT 1 succeeds
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from gatehouse import __version__
from gatehouse.infrastructure import database

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness():
    return {"status": "healthy", "service": "gatehouse-api", "version": __version__}


@router.get("/ready")
async def readiness():
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
