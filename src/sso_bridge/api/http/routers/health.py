"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from src.sso_bridge.api.http.app_data import ApplicationDependencies
from src.sso_bridge.api.http.deps import get_app_dependencies
from src.sso_bridge.core.storage.session_storage import RedisSessionStorage

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness probe: 200 as long as the process is running."""
    return {"status": "healthy", "service": "sso-bridge"}


@router.get("/ready", response_model=None)
async def readiness(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> dict[str, Any] | JSONResponse:
    """Readiness probe covering the database, session storage and SSO config.

    Returns 200 if the service can complete an SSO exchange, 503 otherwise.
    """
    config = app_deps.config
    checks: dict[str, Any] = {}
    all_healthy = True

    db_healthy = app_deps.database_service.health_check()
    checks["database"] = {
        "status": "healthy" if db_healthy else "unhealthy",
        "type": "sqlite" if config.database.is_sqlite else "postgresql",
    }
    all_healthy = all_healthy and db_healthy

    storage = app_deps.session_storage
    storage_healthy = await storage.ping()
    checks["session_storage"] = {
        "status": "healthy" if storage_healthy else "unhealthy",
        "type": "redis" if isinstance(storage, RedisSessionStorage) else "in-memory",
    }
    all_healthy = all_healthy and storage_healthy

    sso_configured = app_deps.sso_exchange_service.configured
    checks["sso"] = {
        "status": "configured" if sso_configured else "misconfigured",
        "token_format": config.sso.token_format,
    }
    all_healthy = all_healthy and sso_configured

    response = {
        "status": "ready" if all_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": checks,
    }

    if not all_healthy:
        return JSONResponse(status_code=503, content=response)

    return response
