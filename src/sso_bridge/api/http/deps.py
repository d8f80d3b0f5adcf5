"""FastAPI dependency implementations."""

from fastapi import Request

from src.sso_bridge.api.http.app_data import ApplicationDependencies
from src.sso_bridge.core.services.sso.exchange import SsoExchangeService


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    """Get the service graph built at startup."""
    return request.app.state.app_dependencies


def get_sso_exchange_service(request: Request) -> SsoExchangeService:
    """Get the SSO exchange service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.sso_exchange_service
