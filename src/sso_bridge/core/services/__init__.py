"""Core services exports."""

from src.sso_bridge.core.storage.session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
)

from .database.db_session import DbSessionService
from .session.authentication import AuthenticationService
from .session.user_session import UserSessionService
from .sso.exchange import SsoExchangeService
from .sso.provisioner import IdentityProvisioner
from .sso.token_gen import TokenGeneratorService
from .user.user_management import UserManagementService

__all__ = [
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "DbSessionService",
    "AuthenticationService",
    "UserSessionService",
    "SsoExchangeService",
    "IdentityProvisioner",
    "TokenGeneratorService",
    "UserManagementService",
]
