"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.sso_bridge.api.http.app_data import ApplicationDependencies
from src.sso_bridge.api.http.routers.health import router as health_router
from src.sso_bridge.api.http.routers.sso import router as sso_router
from src.sso_bridge.api.utils.app_startup import configure_logging
from src.sso_bridge.core.services.database.db_session import DbSessionService
from src.sso_bridge.core.services.session.authentication import AuthenticationService
from src.sso_bridge.core.services.session.user_session import UserSessionService
from src.sso_bridge.core.services.sso.errors import ErrorKind, SsoError
from src.sso_bridge.core.services.sso.exchange import SsoExchangeService
from src.sso_bridge.core.services.sso.provisioner import IdentityProvisioner
from src.sso_bridge.core.services.user.user_management import UserManagementService
from src.sso_bridge.core.storage.session_storage import create_session_storage
from src.sso_bridge.runtime.config.config_data import ConfigData
from src.sso_bridge.runtime.context import get_config

__all__ = ["create_app", "build_dependencies"]


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, environment: str):
        super().__init__(app)
        self._environment = environment

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        response.headers.setdefault(
            "Permissions-Policy", "geolocation=(), microphone=()"
        )
        response.headers.setdefault("Cache-Control", "no-store")
        # HSTS only in prod
        if self._environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


async def build_dependencies(config: ConfigData) -> ApplicationDependencies:
    """Construct the service graph for one application instance."""
    database_service = DbSessionService(config)
    database_service.create_all()

    session_storage = await create_session_storage(config.redis)
    user_session_service = UserSessionService(
        session_storage, session_max_age=config.app.session_max_age
    )
    user_management_service = UserManagementService(database_service)
    authentication_service = AuthenticationService(
        user_management_service, user_session_service, config=config
    )
    provisioner = IdentityProvisioner(
        authentication_service,
        user_management_service,
        credential_secret=config.sso.credential_secret,
        timeout_seconds=config.sso.collaborator_timeout_seconds,
    )
    sso_exchange_service = SsoExchangeService(config, provisioner)

    return ApplicationDependencies(
        config=config,
        database_service=database_service,
        session_storage=session_storage,
        user_session_service=user_session_service,
        user_management_service=user_management_service,
        authentication_service=authentication_service,
        sso_exchange_service=sso_exchange_service,
    )


async def sso_error_handler(request: Request, exc: SsoError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response_body(),
    )


def create_app(config: ConfigData | None = None) -> FastAPI:
    """Build the FastAPI application for ``config`` (the context config by default)."""
    config = config or get_config()
    environment = config.app.environment

    configure_logging(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up application in {} environment", environment)
        deps = await build_dependencies(config)
        app.state.app_dependencies = deps
        if not deps.sso_exchange_service.configured and environment == "production":
            raise RuntimeError("SSO exchange is misconfigured; refusing to start")
        try:
            yield
        finally:
            logger.info("Shutting down application")
            purged = await deps.user_session_service.purge_expired()
            logger.debug("Purged {} expired sessions", purged)
            deps.database_service.dispose()

    app = FastAPI(
        title="SSO Bridge",
        lifespan=lifespan,
        docs_url=None if environment == "production" else "/docs",
        redoc_url=None if environment == "production" else "/redoc",
    )

    app.add_middleware(SecurityHeadersMiddleware, environment=environment)

    # --- CORS configuration ---
    if environment == "production" and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )

    app.add_exception_handler(SsoError, sso_error_handler)

    # --- Request logging middleware ---
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        xff = request.headers.get("x-forwarded-for")
        client_ip = (
            xff.split(",")[0].strip()
            if xff
            else request.client.host
            if request.client
            else "unknown"
        )

        # The query string carries the SSO token and is never logged
        base_ctx = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
            "user_agent": request.headers.get("user-agent", "unknown"),
            "scheme": request.url.scheme,
        }

        start = time.perf_counter()

        with logger.contextualize(**base_ctx):
            try:
                logger.info("request.start")
                response = await call_next(request)

                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 1),
                ).info("request.end")

                response.headers.setdefault("X-Request-ID", request_id)
                return response

            except HTTPException as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=exc.status_code,
                    duration_ms=round(duration_ms, 1),
                    error_type=type(exc).__name__,
                ).exception("request.error")
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"detail": exc.detail, "request_id": request_id},
                    headers={"X-Request-ID": request_id},
                )

            except RequestValidationError as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=422,
                    duration_ms=round(duration_ms, 1),
                    error_type=type(exc).__name__,
                ).exception("request.validation_error")
                return JSONResponse(
                    status_code=422,
                    content={"detail": exc.errors(), "request_id": request_id},
                    headers={"X-Request-ID": request_id},
                )

            except Exception as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=500,
                    duration_ms=round(duration_ms, 1),
                    error_type=type(exc).__name__,
                ).exception("request.error")
                return JSONResponse(
                    status_code=500,
                    content=SsoError(ErrorKind.SERVER_ERROR).to_response_body(),
                    headers={"X-Request-ID": request_id},
                )

    # --- Router registration ---
    app.include_router(sso_router, prefix="/auth")
    app.include_router(health_router)

    return app


if __name__ == "__main__":
    import uvicorn

    main_config = get_config()
    uvicorn.run(
        "src.sso_bridge.api.http.app:create_app",
        factory=True,
        host=main_config.app.host,
        port=main_config.app.port,
        access_log=False,  # We handle access logging in middleware
    )
