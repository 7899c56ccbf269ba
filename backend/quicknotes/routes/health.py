"""
QuickNotes Backend: Health & Liveness Routes
============================================

What:  GET /api/v1/      → {"message": "alive"}   (process is serving)
       GET /health       → store connectivity      (process can do work)
How:   /health runs Database.ping() (SELECT 1) on the handle built by the
       lifespan and answers 503 when the store is unreachable.
Who:   Process supervisors, load balancers and humans with curl.
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from quicknotes import __version__
from quicknotes.exceptions import StorageError
from quicknotes.schemas.note import AliveResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/api/v1/",
    response_model=AliveResponse,
    summary="Liveness probe",
)
async def alive() -> AliveResponse:
    return AliveResponse()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    """
    Returns:
        200 with status "healthy" when SELECT 1 succeeds,
        503 with status "unhealthy" otherwise.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        await request.app.state.database.ping()
    except StorageError as err:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", err.message)

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall != "healthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
