"""SSO token exchange: verification, claims, provisioning and redirect."""

from .claims import ClaimValidator, ClockSkewPolicy
from .errors import ClaimError, ErrorKind, SsoError, TokenError
from .exchange import SsoExchangeService, SsoOutcome, SsoRequest, SsoState
from .provisioner import IdentityProvisioner, ProvisionBranch, ProvisionResult
from .redirect import build_redirect_url
from .session_attach import attach_session
from .token_gen import TokenGeneratorService
from .token_verifier import (
    JwtTokenVerifier,
    SignedPayloadVerifier,
    TokenVerifier,
    build_token_verifier,
)

__all__ = [
    "ClaimValidator",
    "ClockSkewPolicy",
    "ClaimError",
    "ErrorKind",
    "SsoError",
    "TokenError",
    "SsoExchangeService",
    "SsoOutcome",
    "SsoRequest",
    "SsoState",
    "IdentityProvisioner",
    "ProvisionBranch",
    "ProvisionResult",
    "build_redirect_url",
    "attach_session",
    "TokenGeneratorService",
    "TokenVerifier",
    "JwtTokenVerifier",
    "SignedPayloadVerifier",
    "build_token_verifier",
]
