"""Unit tests for SSO token verification in both token shapes."""

import json

import pytest

from src.sso_bridge.core.security import b64url_encode, hmac_sha256
from src.sso_bridge.core.services.sso.errors import ErrorKind
from src.sso_bridge.core.services.sso.token_gen import TokenGeneratorService
from src.sso_bridge.core.services.sso.token_verifier import (
    JwtTokenVerifier,
    SignedPayloadVerifier,
    build_token_verifier,
)
from src.sso_bridge.runtime.config.config_data import SSOConfig


def _segment(obj) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode())


class TestJwtTokenVerifier:
    """Three-part HS256 tokens."""

    def test_round_trip(self, token_generator, signing_secret):
        payload = token_generator.build_claims("a@example.com", subject="u_42")
        token = token_generator.encode_jwt(payload)

        result = JwtTokenVerifier(signing_secret).verify(token)

        assert result.ok
        assert result.claims == payload

    def test_tampered_payload_rejected(self, token_generator, signing_secret):
        token = token_generator.encode_jwt(
            token_generator.build_claims("a@example.com", subject="u_42")
        )
        header, _, signature = token.split(".")
        forged = _segment({"sub": "admin", "email": "a@example.com"})

        result = JwtTokenVerifier(signing_secret).verify(f"{header}.{forged}.{signature}")

        assert not result.ok
        assert result.error.kind is ErrorKind.INVALID_TOKEN

    def test_wrong_secret_rejected(self, token_generator):
        token = token_generator.encode_jwt(token_generator.build_claims("a@example.com"))

        result = JwtTokenVerifier("a-completely-different-secret").verify(token)

        assert not result.ok

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "onlyone",
            "two.parts",
            "a.b.c.d",
            "..",
            "not base64.payload.sig",
        ],
    )
    def test_malformed_structure_rejected(self, token, signing_secret):
        result = JwtTokenVerifier(signing_secret).verify(token)
        assert not result.ok
        assert result.error.kind is ErrorKind.INVALID_TOKEN
        assert result.error.malformed
        assert result.error.status_code == 400

    def test_non_hs256_algorithm_rejected(self, signing_secret):
        header = _segment({"alg": "none", "typ": "JWT"})
        payload = _segment({"sub": "u_42"})
        signature = b64url_encode(
            hmac_sha256(signing_secret, f"{header}.{payload}".encode())
        )

        result = JwtTokenVerifier(signing_secret).verify(f"{header}.{payload}.{signature}")

        assert not result.ok
        assert "algorithm" in result.error.reason
        assert not result.error.malformed

    def test_overlong_token_rejected(self, token_generator, signing_secret):
        payload = token_generator.build_claims(
            "a@example.com", extra_claims={"padding": "x" * 4096}
        )
        token = token_generator.encode_jwt(payload)

        result = JwtTokenVerifier(signing_secret, max_token_length=2048).verify(token)

        assert not result.ok
        assert result.error.reason == "token exceeds maximum length"

    def test_requires_secret(self):
        with pytest.raises(ValueError):
            JwtTokenVerifier("")


class TestSignedPayloadVerifier:
    """Two-part ``payload.signature`` tokens."""

    def test_round_trip(self, token_generator, signing_secret):
        payload = token_generator.build_claims("a@example.com")
        token = token_generator.encode_signed_payload(payload)

        result = SignedPayloadVerifier(signing_secret).verify(token)

        assert result.ok
        assert result.claims == payload

    def test_signature_covers_decoded_payload_bytes(self, signing_secret):
        raw = b'{"email": "a@example.com", "iss": "partner"}'
        signature = b64url_encode(hmac_sha256(signing_secret, raw))

        result = SignedPayloadVerifier(signing_secret).verify(
            f"{b64url_encode(raw)}.{signature}"
        )

        assert result.ok
        assert result.claims["email"] == "a@example.com"

    def test_signature_over_encoded_segment_rejected(self, signing_secret):
        payload_seg = b64url_encode(b'{"email": "a@example.com", "iss": "partner"}')
        signature = b64url_encode(hmac_sha256(signing_secret, payload_seg.encode()))

        result = SignedPayloadVerifier(signing_secret).verify(f"{payload_seg}.{signature}")

        assert not result.ok
        assert result.error.reason == "signature mismatch"
        assert result.error.status_code == 401

    def test_tampered_payload_rejected(self, token_generator, signing_secret):
        token = token_generator.encode_signed_payload(
            token_generator.build_claims("a@example.com")
        )
        _, signature = token.split(".")
        forged = _segment({"email": "attacker@example.com", "iss": "partner"})

        result = SignedPayloadVerifier(signing_secret).verify(f"{forged}.{signature}")

        assert not result.ok
        assert result.error.reason == "signature mismatch"

    def test_jwt_shaped_token_rejected(self, token_generator, signing_secret):
        token = token_generator.encode_jwt(token_generator.build_claims("a@example.com"))
        assert not SignedPayloadVerifier(signing_secret).verify(token).ok

    def test_non_object_payload_rejected(self, signing_secret):
        raw = b'["not", "an", "object"]'
        signature = b64url_encode(hmac_sha256(signing_secret, raw))

        result = SignedPayloadVerifier(signing_secret).verify(
            f"{b64url_encode(raw)}.{signature}"
        )

        assert not result.ok
        assert result.error.malformed


class TestBuildTokenVerifier:
    def test_selects_shape_from_config(self, signing_secret):
        jwt_config = SSOConfig(token_format="jwt", signing_secret=signing_secret)
        payload_config = SSOConfig(
            token_format="signed_payload", signing_secret=signing_secret
        )

        assert isinstance(build_token_verifier(jwt_config), JwtTokenVerifier)
        assert isinstance(build_token_verifier(payload_config), SignedPayloadVerifier)

    def test_generator_and_verifier_agree_on_both_shapes(self, signing_secret):
        generator = TokenGeneratorService(signing_secret, "partner")
        payload = generator.build_claims("a@example.com", subject="u_1")

        for token_format in ("jwt", "signed_payload"):
            verifier = build_token_verifier(
                SSOConfig(token_format=token_format, signing_secret=signing_secret)
            )
            result = verifier.verify(generator.encode(payload, token_format))
            assert result.ok, token_format
            assert result.claims["sub"] == "u_1"


def _flip_char(token: str, segment: int, position: int) -> str:
    parts = token.split(".")
    current = parts[segment][position]
    replacement = "A" if current != "A" else "B"
    parts[segment] = parts[segment][:position] + replacement + parts[segment][position + 1 :]
    return ".".join(parts)


class TestSingleCharacterTampering:
    """Any changed character in any segment is rejected without raising."""

    @pytest.mark.parametrize(
        ("token_format", "segment"),
        [
            ("jwt", 0),
            ("jwt", 1),
            ("jwt", 2),
            ("signed_payload", 0),
            ("signed_payload", 1),
        ],
    )
    def test_every_position_rejected(
        self, token_generator, signing_secret, token_format, segment
    ):
        token = token_generator.encode(
            token_generator.build_claims("a@example.com", subject="u_42"), token_format
        )
        verifier = build_token_verifier(
            SSOConfig(token_format=token_format, signing_secret=signing_secret)
        )
        assert verifier.verify(token).ok

        for position in range(len(token.split(".")[segment])):
            result = verifier.verify(_flip_char(token, segment, position))

            assert not result.ok, (segment, position)
            assert result.error.kind is ErrorKind.INVALID_TOKEN
