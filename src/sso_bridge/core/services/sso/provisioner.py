"""Map trusted SSO claims onto a local account and session."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from fastapi import Request
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.sso_bridge.core.models.claims import TrustedClaims
from src.sso_bridge.core.models.session import UserSession
from src.sso_bridge.core.security import derive_sso_credential
from src.sso_bridge.core.services.session.authentication import (
    AuthenticationService,
    SignInFailed,
    SignInOk,
    SignUpConflict,
)
from src.sso_bridge.core.services.sso.errors import ErrorKind, SsoError
from src.sso_bridge.core.services.user.user_management import (
    RepairOutcome,
    UserManagementService,
)
from src.sso_bridge.core.storage.session_storage import SessionStorageError

T = TypeVar("T")


class ProvisionBranch(str, Enum):
    SESSION_REUSED = "session_reused"
    SIGNED_IN = "signed_in"
    CREATED = "created"


@dataclass(frozen=True)
class ProvisionResult:
    branch: ProvisionBranch
    session: UserSession
    set_cookie_headers: list[str] = field(default_factory=list)

    @property
    def session_created(self) -> bool:
        return self.branch is not ProvisionBranch.SESSION_REUSED


class IdentityProvisioner:
    """Reuse, sign in, or create-then-sign-in, in that order.

    At most one account creation is attempted per call. Concurrent first
    sign-ins for the same subject are settled by the store's unique
    constraints: the loser of the insert race signs in to the winner's
    account.
    """

    def __init__(
        self,
        auth_service: AuthenticationService,
        user_service: UserManagementService,
        credential_secret: str | None,
        timeout_seconds: float = 8.0,
    ):
        self._auth = auth_service
        self._users = user_service
        self._credential_secret = credential_secret
        self._timeout = timeout_seconds

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except TimeoutError as e:
            raise SsoError(
                ErrorKind.SERVER_ERROR, f"{operation} timed out after {self._timeout}s"
            ) from e
        except (SQLAlchemyError, SessionStorageError) as e:
            raise SsoError(
                ErrorKind.SERVER_ERROR, f"{operation} failed: {type(e).__name__}"
            ) from e

    async def find_existing_session(self, request: Request) -> UserSession | None:
        return await self._call("session lookup", self._auth.get_session(request))

    async def provision(
        self, request: Request, claims: TrustedClaims, reuse_session: bool = True
    ) -> ProvisionResult:
        """Resolve ``claims`` to a signed-in local user.

        ``reuse_session=False`` skips the session lookup for callers that
        already performed it.

        Raises:
            SsoError: ``auth_failed``, ``user_creation_failed`` or ``server_error``
        """
        audit = logger.bind(subject=claims.sub, issuer=claims.iss)

        existing = await self.find_existing_session(request) if reuse_session else None
        if existing is not None:
            audit.bind(event="sso.session_reused").info("Reusing existing session")
            return ProvisionResult(ProvisionBranch.SESSION_REUSED, existing)

        if not self._credential_secret:
            raise SsoError(ErrorKind.SERVER_CONFIG, "credential secret is not configured")
        password = derive_sso_credential(claims.sub, self._credential_secret)

        result = await self._call(
            "sign-in", self._auth.sign_in_email(claims.email, password)
        )
        if isinstance(result, SignInOk):
            audit.bind(event="sso.signin_success").info("Signed in existing SSO user")
            return ProvisionResult(
                ProvisionBranch.SIGNED_IN, result.session, result.set_cookie_headers
            )
        if isinstance(result, SignInFailed):
            raise SsoError(ErrorKind.AUTH_FAILED, result.detail)

        audit.bind(event="sso.signin_not_found", reason=result.reason.value).info(
            "No usable credential, provisioning account"
        )
        await self._create_account(claims, password)

        result = await self._call(
            "sign-in after creation", self._auth.sign_in_email(claims.email, password)
        )
        if not isinstance(result, SignInOk):
            raise SsoError(
                ErrorKind.USER_CREATION_FAILED,
                f"sign-in after creation returned {type(result).__name__}",
            )
        audit.bind(event="sso.signin_after_creation").info(
            "Signed in newly provisioned user"
        )
        return ProvisionResult(
            ProvisionBranch.CREATED, result.session, result.set_cookie_headers
        )

    async def _create_account(self, claims: TrustedClaims, password: str) -> None:
        audit = logger.bind(subject=claims.sub)

        outcome = await self._call(
            "account repair",
            asyncio.to_thread(
                self._users.repair_partial_account, claims.sub, claims.email, password
            ),
        )
        if outcome is RepairOutcome.ACCOUNT_COMPLETE:
            # A concurrent request finished creating the account.
            audit.bind(event="sso.account_repair", outcome=outcome.value).info(
                "Account already complete, skipping creation"
            )
            return
        if outcome is RepairOutcome.REMOVED_PARTIAL:
            audit.bind(event="sso.account_repair", outcome=outcome.value).warning(
                "Removed partial account records before creation"
            )

        signup = await self._call(
            "account creation",
            self._auth.sign_up_email(
                user_id=claims.sub,
                email=claims.email,
                name=claims.display_name,
                password=password,
                email_verified=True,
                phone=claims.phone,
            ),
        )
        if isinstance(signup, SignUpConflict):
            audit.bind(event="sso.create_conflict").info(
                "Account created concurrently, falling back to sign-in"
            )
            return

        audit.bind(event="sso.account_created").info("Created SSO user account")
