"""Error taxonomy for the SSO token exchange.

Callers only ever see the ``ErrorKind`` and its generic message. The
``detail`` carried by each error is for logs.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    INVALID_PAYLOAD = "invalid_payload"
    SERVER_CONFIG = "server_config"
    USER_CREATION_FAILED = "user_creation_failed"
    AUTH_FAILED = "auth_failed"
    SERVER_ERROR = "server_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.SERVER_ERROR


_STATUS_CODES = {
    ErrorKind.MISSING_TOKEN: 400,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.INVALID_PAYLOAD: 401,
    ErrorKind.AUTH_FAILED: 401,
    ErrorKind.SERVER_CONFIG: 500,
    ErrorKind.USER_CREATION_FAILED: 500,
    ErrorKind.SERVER_ERROR: 500,
}

_MESSAGES = {
    ErrorKind.MISSING_TOKEN: "SSO token is required",
    ErrorKind.INVALID_TOKEN: "SSO token is invalid",
    ErrorKind.TOKEN_EXPIRED: "SSO token has expired",
    ErrorKind.INVALID_PAYLOAD: "SSO token payload is invalid",
    ErrorKind.SERVER_CONFIG: "SSO is not configured on this server",
    ErrorKind.USER_CREATION_FAILED: "Failed to create user account",
    ErrorKind.AUTH_FAILED: "Authentication failed",
    ErrorKind.SERVER_ERROR: "Internal server error, please retry",
}


class SsoError(Exception):
    """Terminal failure of an SSO exchange."""

    def __init__(
        self,
        kind: ErrorKind,
        detail: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code or kind.status_code

    def to_response_body(self) -> dict[str, object]:
        return {"success": False, "error": self.kind.value, "message": self.kind.message}


@dataclass(frozen=True)
class TokenError:
    """Why a token failed verification. Always surfaced as ``invalid_token``.

    ``malformed`` marks structural failures (segment count, encoding, JSON),
    answered with 400 instead of 401.
    """

    reason: str
    malformed: bool = False

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.INVALID_TOKEN

    @property
    def status_code(self) -> int:
        return 400 if self.malformed else self.kind.status_code


@dataclass(frozen=True)
class ClaimError:
    """First claim that failed validation."""

    kind: ErrorKind
    field: str
    reason: str
