"""Mint SSO tokens in either supported shape.

Used by the developer CLI and tests to produce tokens the way the partner
application does.
"""

import json
import time
from typing import Any

from authlib.jose import JoseError, JsonWebToken

from src.sso_bridge.core.security import b64url_encode, hmac_sha256
from src.sso_bridge.core.services.sso.token_verifier import JWT_ALGORITHM


class TokenGenerationError(Exception):
    """Raised when a token cannot be produced."""


class TokenGeneratorService:
    def __init__(self, secret: str, issuer: str):
        if not secret:
            raise TokenGenerationError("Signing secret is required")
        self._secret = secret
        self._issuer = issuer
        self._jwt = JsonWebToken([JWT_ALGORITHM])

    def build_claims(
        self,
        email: str,
        subject: str | None = None,
        name: str | None = None,
        expires_in_seconds: int = 600,
        extra_claims: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build a claims payload with ``iat``/``exp`` set from now.

        A negative ``expires_in_seconds`` produces an already expired token.
        """
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "email": email,
            "iat": now,
            "exp": now + expires_in_seconds,
        }
        if subject is not None:
            payload["sub"] = subject
        if name is not None:
            payload["name"] = name
        if extra_claims:
            payload.update(
                {
                    k: v
                    for k, v in extra_claims.items()
                    if k not in {"iss", "iat", "exp"}
                }
            )
        return payload

    def encode_jwt(self, payload: dict[str, Any]) -> str:
        """Sign ``payload`` as a three-part HS256 JWT."""
        header = {"alg": JWT_ALGORITHM, "typ": "JWT"}
        try:
            token = self._jwt.encode(header, payload, self._secret)
        except JoseError as e:
            raise TokenGenerationError(f"JWT encoding failed: {e}") from e
        return token.decode() if isinstance(token, bytes) else token

    def encode_signed_payload(self, payload: dict[str, Any]) -> str:
        """Sign ``payload`` as a two-part ``payload.signature`` token."""
        payload_raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        signature = hmac_sha256(self._secret, payload_raw)
        return f"{b64url_encode(payload_raw)}.{b64url_encode(signature)}"

    def encode(self, payload: dict[str, Any], token_format: str) -> str:
        if token_format == "jwt":
            return self.encode_jwt(payload)
        if token_format == "signed_payload":
            return self.encode_signed_payload(payload)
        raise TokenGenerationError(f"Unknown token format: {token_format}")
