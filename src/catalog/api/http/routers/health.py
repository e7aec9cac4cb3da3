"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Request, status
from loguru import logger
from starlette.responses import JSONResponse

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.core.exceptions import RecordStoreError
from src.catalog.runtime.context import get_config

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health() -> dict[str, str]:
    """Liveness probe: 200 as long as the process is serving requests."""
    return {"status": "healthy", "service": "catalog"}


@router.get("/ready", response_model=None)
def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: reads the record store once.

    Returns 503 when the store file is missing (and may not be created),
    locked past the timeout, or corrupt.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    repository = app_deps.product_repository

    try:
        count = repository.count()
        store_check = {
            "status": "healthy",
            "location": repository.storage.location,
            "records": count,
        }
        healthy = True
    except RecordStoreError as e:
        logger.warning("Readiness check failed: {}", e)
        store_check = {
            "status": "unhealthy",
            "location": repository.storage.location,
            "error": type(e).__name__,
        }
        healthy = False

    body = {
        "status": "ready" if healthy else "not_ready",
        "environment": get_config().app.environment,
        "checks": {"store": store_check},
    }
    if not healthy:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
