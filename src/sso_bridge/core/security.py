"""Security utilities for the SSO token exchange."""

import base64
import binascii
import hashlib
import hmac
import secrets

from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Values shipped in sample env files and docs; never valid in a deployment.
PLACEHOLDER_SECRETS = frozenset(
    {
        "changeme",
        "change-me",
        "secret",
        "dev-secret",
        "your-supabase-jwt-secret-here",
        "your-sso-signing-secret-here",
        "your-credential-secret-here",
    }
)
MIN_PRODUCTION_SECRET_LENGTH = 16

_B64URL_ALPHABET = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
)


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token.

    Args:
        length: Number of random bytes to generate (default 32)

    Returns:
        URL-safe base64 encoded token
    """
    return b64url_encode(secrets.token_bytes(length))


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(segment: str) -> bytes:
    """Decode unpadded URL-safe base64, accepting only the canonical encoding.

    Non-canonical trailing bits are rejected so that every character of a
    segment is covered by its decoded value.

    Raises:
        ValueError: If the segment is not valid base64url
    """
    if any(c not in _B64URL_ALPHABET for c in segment):
        raise ValueError("Segment contains characters outside the base64url alphabet")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise ValueError("Segment is not valid base64url") from e
    if b64url_encode(decoded) != segment:
        raise ValueError("Segment is not canonical base64url")
    return decoded


def hmac_sha256(secret: str, message: bytes) -> bytes:
    """Compute an HMAC-SHA256 digest with a UTF-8 encoded secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def constant_time_equals(expected: bytes, actual: bytes) -> bool:
    """Compare two digests in time independent of where they differ."""
    return hmac.compare_digest(expected, actual)


def derive_sso_credential(subject: str, server_secret: str) -> str:
    """Derive the deterministic local credential for an SSO subject.

    The value depends on a server-held secret so that knowing a subject id
    is never enough to sign in as that user.
    """
    digest = hmac_sha256(server_secret, f"sso:{subject}".encode())
    return b64url_encode(digest)


def is_placeholder_secret(secret: str | None, environment: str = "development") -> bool:
    """Return True if the secret is missing, a known placeholder or too weak.

    Short secrets are only rejected in production so local setups can use
    readable values.
    """
    if secret is None or not secret.strip():
        return True
    if secret.strip().lower() in PLACEHOLDER_SECRETS:
        return True
    return environment == "production" and len(secret) < MIN_PRODUCTION_SECRET_LENGTH


def hash_password(password: str) -> str:
    """Hash a credential for storage."""
    return _pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify a credential against a stored hash; unknown hash formats fail."""
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except ValueError:
        return False
