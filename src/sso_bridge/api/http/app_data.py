from dataclasses import dataclass

from src.sso_bridge.core.services.database.db_session import DbSessionService
from src.sso_bridge.core.services.session.authentication import AuthenticationService
from src.sso_bridge.core.services.session.user_session import UserSessionService
from src.sso_bridge.core.services.sso.exchange import SsoExchangeService
from src.sso_bridge.core.services.user.user_management import UserManagementService
from src.sso_bridge.core.storage.session_storage import SessionStorage
from src.sso_bridge.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    database_service: DbSessionService
    session_storage: SessionStorage
    user_session_service: UserSessionService
    user_management_service: UserManagementService
    authentication_service: AuthenticationService
    sso_exchange_service: SsoExchangeService
