"""Unit tests for claim validation."""

import pytest

from src.sso_bridge.core.models.claims import TrustedClaims
from src.sso_bridge.core.services.sso.claims import (
    ClaimValidator,
    ClockSkewPolicy,
    derive_subject,
)
from src.sso_bridge.core.services.sso.errors import ClaimError, ErrorKind
from src.sso_bridge.runtime.config.config_data import SSOConfig

NOW = 1_700_000_000


def _validator(token_format="jwt", policy=None) -> ClaimValidator:
    return ClaimValidator(
        expected_issuer="partner",
        token_format=token_format,
        policy=policy,
        clock=lambda: NOW,
    )


def _claims(**overrides):
    claims = {
        "sub": "u_42",
        "email": "a@example.com",
        "iss": "partner",
        "iat": NOW - 10,
        "exp": NOW + 600,
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


class TestClaimValidator:
    def test_valid_claims(self):
        result = _validator().validate(_claims())

        assert isinstance(result, TrustedClaims)
        assert result.sub == "u_42"
        assert result.email == "a@example.com"
        assert result.iss == "partner"
        assert result.exp == NOW + 600

    def test_email_normalized(self):
        result = _validator().validate(_claims(email="  Alice@Example.COM "))
        assert result.email == "alice@example.com"

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"sub": None}, "sub"),
            ({"sub": "   "}, "sub"),
            ({"sub": 42}, "sub"),
            ({"email": None}, "email"),
            ({"email": "not-an-email"}, "email"),
            ({"iss": None}, "iss"),
            ({"iat": None}, "iat"),
            ({"exp": "tomorrow"}, "exp"),
            ({"exp": True}, "exp"),
            ({"exp": float("nan")}, "exp"),
            ({"exp": float("inf")}, "exp"),
            ({"iat": float("-inf")}, "iat"),
        ],
    )
    def test_missing_or_malformed_required_claim(self, overrides, field):
        result = _validator().validate(_claims(**overrides))

        assert isinstance(result, ClaimError)
        assert result.kind is ErrorKind.INVALID_PAYLOAD
        assert result.field == field

    def test_non_object_payload(self):
        result = _validator().validate(["sub", "u_42"])
        assert isinstance(result, ClaimError)
        assert result.field == "payload"

    def test_issuer_pinned(self):
        result = _validator().validate(_claims(iss="someone-else"))

        assert isinstance(result, ClaimError)
        assert result.kind is ErrorKind.INVALID_PAYLOAD
        assert result.field == "iss"

    def test_issuer_match_is_exact(self):
        result = _validator().validate(_claims(iss="Partner"))
        assert isinstance(result, ClaimError)

    def test_expired_token(self):
        result = _validator().validate(_claims(exp=NOW - 1))

        assert isinstance(result, ClaimError)
        assert result.kind is ErrorKind.TOKEN_EXPIRED
        assert result.field == "exp"

    def test_expiry_boundary_has_no_grace(self):
        assert isinstance(_validator().validate(_claims(exp=NOW)), TrustedClaims)
        assert isinstance(_validator().validate(_claims(exp=NOW - 1)), ClaimError)

    def test_leeway_extends_expiry(self):
        validator = _validator(policy=ClockSkewPolicy(leeway_seconds=30))
        assert isinstance(validator.validate(_claims(exp=NOW - 20)), TrustedClaims)
        assert isinstance(validator.validate(_claims(exp=NOW - 40)), ClaimError)

    def test_allow_expired_policy_accepts_expired(self):
        validator = _validator(policy=ClockSkewPolicy(allow_expired=True))
        result = validator.validate(_claims(exp=NOW - 3600))
        assert isinstance(result, TrustedClaims)

    def test_issuer_checked_before_expiry(self):
        result = _validator().validate(_claims(iss="other", exp=NOW - 1))
        assert result.kind is ErrorKind.INVALID_PAYLOAD

    def test_display_name_sources(self):
        from_metadata = _validator().validate(
            _claims(user_metadata={"full_name": "Ada Lovelace"}, name="ignored")
        )
        from_claim = _validator().validate(_claims(name="Grace"))
        fallback = _validator().validate(_claims())

        assert from_metadata.display_name == "Ada Lovelace"
        assert from_claim.display_name == "Grace"
        assert fallback.display_name == "a"

    def test_optional_claims_kept_only_when_well_formed(self):
        result = _validator().validate(
            _claims(
                phone="+15550100",
                role="authenticated",
                aud="authenticated",
                amr=[{"method": "password", "timestamp": NOW}],
                aal=5,
                app_metadata="not-a-dict",
            )
        )

        assert result.phone == "+15550100"
        assert result.role == "authenticated"
        assert result.metadata["aud"] == "authenticated"
        assert result.metadata["amr"] == [{"method": "password", "timestamp": NOW}]
        assert "aal" not in result.metadata
        assert "app_metadata" not in result.metadata


class TestSignedPayloadClaims:
    def test_subject_derived_from_issuer_and_email(self):
        result = _validator(token_format="signed_payload").validate(
            _claims(sub=None, email="A@example.com")
        )

        assert isinstance(result, TrustedClaims)
        assert result.sub == derive_subject("partner", "a@example.com")
        assert result.sub.startswith("sso_")

    def test_derived_subject_is_stable_and_issuer_scoped(self):
        assert derive_subject("partner", "a@example.com") == derive_subject(
            "partner", "A@EXAMPLE.com"
        )
        assert derive_subject("partner", "a@example.com") != derive_subject(
            "other", "a@example.com"
        )


class TestClockSkewPolicy:
    def test_from_config(self):
        policy = ClockSkewPolicy.from_config(
            SSOConfig(clock_skew_seconds=15), "development"
        )
        assert policy == ClockSkewPolicy(allow_expired=False, leeway_seconds=15)

    def test_production_has_zero_grace(self):
        policy = ClockSkewPolicy.from_config(SSOConfig(), "production")
        assert policy == ClockSkewPolicy(allow_expired=False, leeway_seconds=0)

    def test_leeway_refused_in_production(self):
        with pytest.raises(ValueError):
            ClockSkewPolicy.from_config(
                SSOConfig(clock_skew_seconds=3600), "production"
            )

    def test_allow_expired_refused_in_production(self):
        with pytest.raises(ValueError):
            ClockSkewPolicy.from_config(
                SSOConfig(allow_expired_tokens=True), "production"
            )

    def test_allow_expired_permitted_in_development(self):
        policy = ClockSkewPolicy.from_config(
            SSOConfig(allow_expired_tokens=True), "development"
        )
        assert policy.allow_expired
