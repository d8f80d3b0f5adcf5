"""Schema, issuer and expiry validation of verified token payloads."""

import hashlib
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, EmailStr, TypeAdapter, ValidationError

from src.sso_bridge.core.models.claims import TrustedClaims
from src.sso_bridge.core.services.sso.errors import ClaimError, ErrorKind
from src.sso_bridge.runtime.config.config_data import SSOConfig

TokenFormat = Literal["jwt", "signed_payload"]

_email_adapter = TypeAdapter(EmailStr)


class AuthMethod(BaseModel):
    method: str
    timestamp: int


# Optional claims copied into TrustedClaims.metadata when well formed
_OPTIONAL_METADATA: dict[str, TypeAdapter] = {
    "aud": TypeAdapter(str | list[str]),
    "app_metadata": TypeAdapter(dict[str, Any]),
    "aal": TypeAdapter(str),
    "amr": TypeAdapter(list[AuthMethod]),
    "is_anonymous": TypeAdapter(bool),
}
_optional_str = TypeAdapter(str)


@dataclass(frozen=True)
class ClockSkewPolicy:
    """How strictly ``exp`` is enforced.

    ``allow_expired`` exists for local development against stale partner
    tokens. Both it and a non-zero leeway are refused outside development
    and test environments.
    """

    allow_expired: bool = False
    leeway_seconds: int = 0

    @classmethod
    def from_config(cls, config: SSOConfig, environment: str) -> "ClockSkewPolicy":
        if config.allow_expired_tokens and environment not in ("development", "test"):
            raise ValueError(
                f"Expired tokens cannot be accepted in the {environment} environment"
            )
        if config.clock_skew_seconds and environment not in ("development", "test"):
            raise ValueError(
                f"Clock skew leeway must be 0 in the {environment} environment"
            )
        return cls(
            allow_expired=config.allow_expired_tokens,
            leeway_seconds=config.clock_skew_seconds,
        )


def derive_subject(issuer: str, email: str) -> str:
    """Stable subject id for tokens that carry no ``sub`` claim."""
    digest = hashlib.sha256(f"{issuer}:{email.lower()}".encode()).hexdigest()
    return f"sso_{digest[:32]}"


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def _optional_text(value: Any) -> str | None:
    try:
        text = _optional_str.validate_python(value, strict=True)
    except ValidationError:
        return None
    text = text.strip()
    return text or None


class ClaimValidator:
    """Turn a verified raw payload into ``TrustedClaims``.

    Checks run in a fixed order and the first failure is reported:
    payload type, required fields, issuer, expiry.
    """

    def __init__(
        self,
        expected_issuer: str,
        token_format: TokenFormat = "jwt",
        policy: ClockSkewPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if not expected_issuer:
            raise ValueError("Claim validator requires an expected issuer")
        self._expected_issuer = expected_issuer
        self._token_format = token_format
        self._policy = policy or ClockSkewPolicy()
        self._clock = clock

    def validate(self, raw: Any) -> TrustedClaims | ClaimError:
        if not isinstance(raw, dict):
            return self._invalid("payload", "payload is not an object")

        subject = None
        if self._token_format == "jwt":
            subject = raw.get("sub")
            if not isinstance(subject, str) or not subject.strip():
                return self._invalid("sub", "missing or empty")
            subject = subject.strip()

        email = raw.get("email")
        if not isinstance(email, str):
            return self._invalid("email", "missing")
        try:
            email = str(_email_adapter.validate_python(email.strip())).lower()
        except ValidationError:
            return self._invalid("email", "malformed")

        issuer = raw.get("iss")
        if not isinstance(issuer, str) or not issuer:
            return self._invalid("iss", "missing")

        for field in ("iat", "exp"):
            if not _is_number(raw.get(field)):
                return self._invalid(field, "missing or not a number")

        if issuer != self._expected_issuer:
            return self._invalid("iss", "unexpected issuer")

        exp = int(raw["exp"])
        now = self._clock()
        if now > exp + self._policy.leeway_seconds:
            if not self._policy.allow_expired:
                return ClaimError(
                    kind=ErrorKind.TOKEN_EXPIRED, field="exp", reason="token expired"
                )
            logger.bind(subject=subject or email).warning(
                "Accepting expired SSO token because allow_expired is enabled"
            )

        if subject is None:
            subject = derive_subject(issuer, email)

        return TrustedClaims(
            sub=subject,
            iss=issuer,
            email=email,
            iat=int(raw["iat"]),
            exp=exp,
            name=self._display_name(raw),
            phone=_optional_text(raw.get("phone")),
            role=_optional_text(raw.get("role")),
            session_id=_optional_text(raw.get("session_id")),
            metadata=self._metadata(raw),
        )

    @staticmethod
    def _invalid(field: str, reason: str) -> ClaimError:
        return ClaimError(kind=ErrorKind.INVALID_PAYLOAD, field=field, reason=reason)

    @staticmethod
    def _display_name(raw: dict[str, Any]) -> str | None:
        user_metadata = raw.get("user_metadata")
        if isinstance(user_metadata, dict):
            for key in ("full_name", "name"):
                name = _optional_text(user_metadata.get(key))
                if name:
                    return name
        return _optional_text(raw.get("name"))

    @staticmethod
    def _metadata(raw: dict[str, Any]) -> dict[str, Any]:
        metadata = {}
        for key, adapter in _OPTIONAL_METADATA.items():
            if key not in raw:
                continue
            try:
                value = adapter.validate_python(raw[key], strict=True)
            except ValidationError:
                logger.debug(f"Dropping malformed optional claim {key}")
                continue
            metadata[key] = adapter.dump_python(value, mode="json")
        return metadata
