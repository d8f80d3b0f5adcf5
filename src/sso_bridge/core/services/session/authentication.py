"""Email and password authentication backed by the local user store.

Sign-in and sign-up return typed results so callers branch on the outcome
without inspecting error messages.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request, Response

from src.sso_bridge.core.models.session import UserSession
from src.sso_bridge.core.services.session.user_session import UserSessionService
from src.sso_bridge.core.services.user.user_management import (
    CredentialStatus,
    UserConflictError,
    UserManagementService,
)
from src.sso_bridge.entities.core.user import User
from src.sso_bridge.runtime.config.config_data import ConfigData
from src.sso_bridge.runtime.context import get_config

SSO_SESSION_PROVIDER = "sso"


@dataclass(frozen=True)
class SignInOk:
    session: UserSession
    set_cookie_headers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SignInNotFound:
    """No usable credential for this email: unknown user, no account or mismatch."""

    reason: CredentialStatus


@dataclass(frozen=True)
class SignInFailed:
    """The sign-in request itself was rejected; not a missing account."""

    detail: str


SignInResult = SignInOk | SignInNotFound | SignInFailed


@dataclass(frozen=True)
class SignUpOk:
    user: User


@dataclass(frozen=True)
class SignUpConflict:
    detail: str


SignUpResult = SignUpOk | SignUpConflict


def get_secure_cookie_settings(config: ConfigData) -> dict[str, Any]:
    """Cookie attributes for the session cookie.

    HttpOnly always; Secure in production unless disabled by configuration.
    """
    return {
        "httponly": True,
        "secure": config.security.secure_cookies
        and config.app.environment == "production",
        "samesite": config.security.cookie_samesite,
        "path": "/",
    }


def build_session_cookie_headers(config: ConfigData, session_id: str) -> list[str]:
    """Render the Set-Cookie header values that carry ``session_id``."""
    scratch = Response()
    scratch.set_cookie(
        key=config.app.session_cookie_name,
        value=session_id,
        max_age=config.app.session_max_age,
        **get_secure_cookie_settings(config),
    )
    return [
        value.decode("latin-1")
        for name, value in scratch.raw_headers
        if name.lower() == b"set-cookie"
    ]


class AuthenticationService:
    """Session and credential authentication service."""

    def __init__(
        self,
        user_service: UserManagementService,
        user_session_service: UserSessionService,
        config: ConfigData | None = None,
    ) -> None:
        self._users = user_service
        self._sessions = user_session_service
        self._config = config or get_config()

    async def get_session(self, request: Request) -> UserSession | None:
        """Return the active session carried by the request's cookie, if any."""
        session_id = request.cookies.get(self._config.app.session_cookie_name)
        if not session_id:
            return None
        return await self._sessions.get_user_session(session_id)

    async def sign_in_email(self, email: str, password: str) -> SignInResult:
        """Verify the credential and open a new session.

        Raises:
            SQLAlchemyError: If the user store cannot be queried
            SessionStorageError: If the new session cannot be stored
        """
        if not email or not email.strip() or not password:
            return SignInFailed(detail="email and password are required")

        check = await asyncio.to_thread(self._users.check_credential, email, password)

        if check.status != CredentialStatus.VALID or check.user is None:
            return SignInNotFound(reason=check.status)

        session = await self._sessions.create_user_session(
            user_id=check.user.id, provider=SSO_SESSION_PROVIDER
        )
        return SignInOk(
            session=session,
            set_cookie_headers=build_session_cookie_headers(self._config, session.id),
        )

    async def sign_up_email(
        self,
        user_id: str,
        email: str,
        name: str,
        password: str,
        email_verified: bool = True,
        phone: str | None = None,
    ) -> SignUpResult:
        """Create a user together with its credential account.

        Raises:
            SQLAlchemyError: On store failures other than a unique conflict
        """
        try:
            user = await asyncio.to_thread(
                self._users.create_user_with_credential,
                user_id,
                email,
                name,
                password,
                email_verified,
                phone,
            )
        except UserConflictError as e:
            return SignUpConflict(detail=str(e))
        return SignUpOk(user=user)
