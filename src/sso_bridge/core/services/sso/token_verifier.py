"""Cryptographic verification of incoming SSO tokens.

Two token shapes are supported, each bound to HMAC-SHA256 with a shared
secret:

* ``jwt``: ``base64url(header).base64url(payload).base64url(sig)`` where the
  signature covers ``header "." payload``.
* ``signed_payload``: ``base64url(payload).base64url(sig)`` where the
  signature covers the decoded payload bytes alone.

The shape is fixed by configuration. A verifier never looks at a token to
decide how to verify it.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from authlib.jose import JoseError, JsonWebToken
from loguru import logger

from src.sso_bridge.core.security import (
    b64url_decode,
    constant_time_equals,
    hmac_sha256,
)
from src.sso_bridge.core.services.sso.errors import TokenError
from src.sso_bridge.runtime.config.config_data import SSOConfig

JWT_ALGORITHM = "HS256"
MAX_HEADER_BYTES = 1024


@dataclass(frozen=True)
class VerificationResult:
    """Raw claims of a verified token, or the reason verification failed."""

    claims: dict[str, Any] | None = None
    error: TokenError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.claims is not None


def _fail(reason: str) -> VerificationResult:
    return VerificationResult(error=TokenError(reason=reason))


def _malformed(reason: str) -> VerificationResult:
    return VerificationResult(error=TokenError(reason=reason, malformed=True))


def _decode_json_object(raw: bytes, what: str) -> dict[str, Any]:
    try:
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"{what} is not valid JSON") from e
    if not isinstance(value, dict):
        raise ValueError(f"{what} is not a JSON object")
    return value


class TokenVerifier(ABC):
    """Verify a token's integrity and return its raw claims."""

    def __init__(self, secret: str, max_token_length: int = 2048):
        if not secret:
            raise ValueError("Token verifier requires a signing secret")
        self._secret = secret
        self._max_token_length = max_token_length

    def verify(self, token: str) -> VerificationResult:
        if not token:
            return _malformed("empty token")
        if len(token) > self._max_token_length:
            return _malformed("token exceeds maximum length")
        result = self._verify(token.strip())
        if result.error is not None:
            logger.bind(reason=result.error.reason).debug("Token verification failed")
        return result

    @abstractmethod
    def _verify(self, token: str) -> VerificationResult: ...


class JwtTokenVerifier(TokenVerifier):
    """Three-part compact JWS tokens signed with HS256."""

    def __init__(self, secret: str, max_token_length: int = 2048):
        super().__init__(secret, max_token_length)
        self._jwt = JsonWebToken([JWT_ALGORITHM])

    def _verify(self, token: str) -> VerificationResult:
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            return _malformed("expected three non-empty segments")

        header_seg, payload_seg, signature_seg = parts
        try:
            header_raw = b64url_decode(header_seg)
            b64url_decode(payload_seg)
            b64url_decode(signature_seg)
        except ValueError as e:
            return _malformed(str(e))

        if len(header_raw) > MAX_HEADER_BYTES:
            return _malformed("header too large")

        try:
            header = _decode_json_object(header_raw, "JWT header")
        except ValueError as e:
            return _malformed(str(e))

        if header.get("alg") != JWT_ALGORITHM:
            return _fail(f"unsupported algorithm {header.get('alg')!r}")
        if "typ" in header and str(header["typ"]).upper() != "JWT":
            return _fail("unexpected token type")

        try:
            claims = self._jwt.decode(token.encode("ascii"), self._secret)
        except (JoseError, ValueError) as e:
            return _fail(f"signature verification failed: {type(e).__name__}")

        return VerificationResult(claims=dict(claims))


class SignedPayloadVerifier(TokenVerifier):
    """Two-part ``payload.signature`` tokens."""

    def _verify(self, token: str) -> VerificationResult:
        parts = token.split(".")
        if len(parts) != 2 or not all(parts):
            return _malformed("expected two non-empty segments")

        payload_seg, signature_seg = parts
        try:
            payload_raw = b64url_decode(payload_seg)
            signature = b64url_decode(signature_seg)
        except ValueError as e:
            return _malformed(str(e))

        expected = hmac_sha256(self._secret, payload_raw)
        if not constant_time_equals(expected, signature):
            return _fail("signature mismatch")

        try:
            claims = _decode_json_object(payload_raw, "payload")
        except ValueError as e:
            return _malformed(str(e))

        return VerificationResult(claims=claims)


def build_token_verifier(config: SSOConfig) -> TokenVerifier:
    """Create the verifier for the configured token shape."""
    if config.token_format == "jwt":
        return JwtTokenVerifier(config.signing_secret, config.max_token_length)
    if config.token_format == "signed_payload":
        return SignedPayloadVerifier(config.signing_secret, config.max_token_length)
    raise ValueError(f"Unknown token format: {config.token_format}")
