"""SSO token exchange orchestration.

One request makes one pass through the states below. Any state may end in
``FAILED``; nothing is retried here.

    RECEIVED -> VERIFIED -> CLAIMS_VALID -> IDENTITY_RESOLVED
             -> SESSION_ESTABLISHED -> REDIRECTING

A request that already carries a valid session jumps from ``RECEIVED`` to
``SESSION_ESTABLISHED``.
"""

from dataclasses import dataclass, field
from enum import Enum

from fastapi import Request
from loguru import logger

from src.sso_bridge.core.models.claims import TrustedClaims
from src.sso_bridge.core.security import is_placeholder_secret
from src.sso_bridge.core.services.sso.claims import ClaimValidator, ClockSkewPolicy
from src.sso_bridge.core.services.sso.errors import ClaimError, ErrorKind, SsoError
from src.sso_bridge.core.services.sso.provisioner import (
    IdentityProvisioner,
    ProvisionBranch,
)
from src.sso_bridge.core.services.sso.redirect import build_redirect_url
from src.sso_bridge.core.services.sso.token_verifier import (
    TokenVerifier,
    build_token_verifier,
)
from src.sso_bridge.runtime.config.config_data import ConfigData


class SsoState(str, Enum):
    RECEIVED = "received"
    VERIFIED = "verified"
    CLAIMS_VALID = "claims_valid"
    IDENTITY_RESOLVED = "identity_resolved"
    SESSION_ESTABLISHED = "session_established"
    REDIRECTING = "redirecting"
    FAILED = "failed"


@dataclass(frozen=True)
class SsoRequest:
    token: str | None
    product: str | None = None
    price: str | None = None
    billing: str | None = None
    referrer: str | None = None


@dataclass
class SsoOutcome:
    redirect_url: str
    branch: ProvisionBranch
    set_cookie_headers: list[str] = field(default_factory=list)
    states: list[SsoState] = field(default_factory=list)
    subject: str | None = None

    @property
    def session_created(self) -> bool:
        return self.branch is not ProvisionBranch.SESSION_REUSED


class SsoExchangeService:
    """Drive a single SSO request from token to redirect target."""

    def __init__(self, config: ConfigData, provisioner: IdentityProvisioner):
        self._config = config
        self._provisioner = provisioner
        self._config_error = self._check_config(config)
        self._verifier: TokenVerifier | None = None
        self._validator: ClaimValidator | None = None

        if self._config_error is None:
            self._verifier = build_token_verifier(config.sso)
            self._validator = ClaimValidator(
                expected_issuer=config.sso.expected_issuer,
                token_format=config.sso.token_format,
                policy=ClockSkewPolicy.from_config(config.sso, config.app.environment),
            )
        else:
            logger.error(f"SSO exchange disabled: {self._config_error}")

    @staticmethod
    def _check_config(config: ConfigData) -> str | None:
        environment = config.app.environment
        if is_placeholder_secret(config.sso.signing_secret, environment):
            return "sso.signing_secret is missing or a placeholder"
        if is_placeholder_secret(config.sso.credential_secret, environment):
            return "sso.credential_secret is missing or a placeholder"
        if not config.sso.expected_issuer:
            return "sso.expected_issuer is not set"
        if config.sso.allow_expired_tokens and environment not in ("development", "test"):
            return "sso.allow_expired_tokens is only allowed in development and test"
        if config.sso.clock_skew_seconds and environment not in ("development", "test"):
            return "sso.clock_skew_seconds must be 0 outside development and test"
        return None

    @property
    def configured(self) -> bool:
        return self._config_error is None

    async def exchange(
        self, request: Request, sso_request: SsoRequest, base_url: str
    ) -> SsoOutcome:
        """Run the exchange.

        Raises:
            SsoError: On any failure, carrying the caller-facing ``ErrorKind``
        """
        states = [SsoState.RECEIVED]
        try:
            return await self._run(request, sso_request, base_url, states)
        except SsoError as e:
            states.append(SsoState.FAILED)
            logger.bind(
                error_kind=e.kind.value,
                failed_after=states[-2].value,
                retryable=e.kind.retryable,
            ).warning(f"SSO exchange failed: {e.detail or e.kind.value}")
            raise
        except Exception as e:
            states.append(SsoState.FAILED)
            logger.exception("Unexpected error during SSO exchange")
            raise SsoError(ErrorKind.SERVER_ERROR, type(e).__name__) from e

    async def _run(
        self,
        request: Request,
        sso_request: SsoRequest,
        base_url: str,
        states: list[SsoState],
    ) -> SsoOutcome:
        token = (sso_request.token or "").strip()
        if not token:
            raise SsoError(ErrorKind.MISSING_TOKEN)

        existing = await self._provisioner.find_existing_session(request)
        if existing is not None:
            logger.bind(event="sso.session_reused", subject=existing.user_id).info(
                "Request already authenticated, skipping token exchange"
            )
            states.extend([SsoState.SESSION_ESTABLISHED, SsoState.REDIRECTING])
            return SsoOutcome(
                redirect_url=self._redirect_url(base_url, sso_request),
                branch=ProvisionBranch.SESSION_REUSED,
                states=states,
                subject=existing.user_id,
            )

        if self._config_error is not None:
            raise SsoError(ErrorKind.SERVER_CONFIG, self._config_error)

        claims = self._verify(token)
        states.append(SsoState.VERIFIED)

        trusted = self._validate(claims)
        states.append(SsoState.CLAIMS_VALID)

        result = await self._provisioner.provision(request, trusted, reuse_session=False)
        states.append(SsoState.IDENTITY_RESOLVED)

        if not result.set_cookie_headers:
            raise SsoError(ErrorKind.SERVER_ERROR, "sign-in returned no session cookie")
        states.extend([SsoState.SESSION_ESTABLISHED, SsoState.REDIRECTING])

        logger.bind(
            event="sso.exchange_complete", subject=trusted.sub, branch=result.branch.value
        ).info("SSO exchange complete")
        return SsoOutcome(
            redirect_url=self._redirect_url(base_url, sso_request),
            branch=result.branch,
            set_cookie_headers=result.set_cookie_headers,
            states=states,
            subject=trusted.sub,
        )

    def _verify(self, token: str) -> dict:
        result = self._verifier.verify(token)
        if not result.ok:
            raise SsoError(
                ErrorKind.INVALID_TOKEN,
                result.error.reason,
                status_code=result.error.status_code,
            )
        return result.claims

    def _validate(self, claims: dict) -> TrustedClaims:
        validated = self._validator.validate(claims)
        if isinstance(validated, ClaimError):
            raise SsoError(
                validated.kind, f"claim '{validated.field}': {validated.reason}"
            )
        return validated

    def _redirect_url(self, base_url: str, sso_request: SsoRequest) -> str:
        return build_redirect_url(
            self._config.app.public_base_url or base_url,
            price=sso_request.price,
            billing=sso_request.billing,
            referrer=sso_request.referrer,
            path=self._config.sso.redirect_path,
        )
