"""Unit tests for configuration loading and the application context."""

import pytest

from src.sso_bridge.runtime.config.config_data import ConfigData, SSOConfig
from src.sso_bridge.runtime.config.config_template import (
    load_templated_yaml,
    substitute_env_vars,
)
from src.sso_bridge.runtime.context import get_config, set_config, with_context

CONFIG_YAML = """
config:
  app:
    environment: "${APP_ENVIRONMENT:-development}"
  sso:
    token_format: "${SSO_TOKEN_FORMAT:-jwt}"
    signing_secret: "${SSO_SIGNING_SECRET:-}"
    expected_issuer: "${SSO_EXPECTED_ISSUER:-supabase}"
    allow_expired_tokens: ${SSO_ALLOW_EXPIRED_TOKENS:-false}
    clock_skew_seconds: ${SSO_CLOCK_SKEW_SECONDS:-0}
"""


class TestSubstituteEnvVars:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("SSO_TEST_VALUE", raising=False)
        assert substitute_env_vars("v=${SSO_TEST_VALUE:-fallback}") == "v=fallback"

    def test_environment_value_wins(self, monkeypatch):
        monkeypatch.setenv("SSO_TEST_VALUE", "set")
        assert substitute_env_vars("v=${SSO_TEST_VALUE:-fallback}") == "v=set"

    def test_required_variable_missing(self, monkeypatch):
        monkeypatch.delenv("SSO_TEST_VALUE", raising=False)
        with pytest.raises(ValueError):
            substitute_env_vars("${SSO_TEST_VALUE:?must be set}")


class TestLoadTemplatedYaml:
    def test_loads_sso_section(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("SSO_TOKEN_FORMAT", "signed_payload")
        monkeypatch.setenv("SSO_SIGNING_SECRET", "from-env-secret")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        config = load_templated_yaml(path)

        assert config.app.environment == "test"
        assert config.sso.token_format == "signed_payload"
        assert config.sso.signing_secret == "from-env-secret"
        assert config.sso.expected_issuer == "supabase"

    def test_environment_prefixed_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("SSO_EXPECTED_ISSUER", "plain")
        monkeypatch.setenv("TEST_SSO_EXPECTED_ISSUER", "prefixed")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        assert load_templated_yaml(path).sso.expected_issuer == "prefixed"

    def test_allow_expired_rejected_in_production(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.setenv("SSO_ALLOW_EXPIRED_TOKENS", "true")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        with pytest.raises(ValueError):
            load_templated_yaml(path)

    @pytest.mark.parametrize(
        ("environment", "accepted"), [("production", False), ("development", True)]
    )
    def test_clock_skew_only_outside_production(
        self, tmp_path, monkeypatch, environment, accepted
    ):
        monkeypatch.setenv("APP_ENVIRONMENT", environment)
        monkeypatch.delenv("SSO_ALLOW_EXPIRED_TOKENS", raising=False)
        monkeypatch.setenv("SSO_CLOCK_SKEW_SECONDS", "3600")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        if accepted:
            assert load_templated_yaml(path).sso.clock_skew_seconds == 3600
        else:
            with pytest.raises(ValueError):
                load_templated_yaml(path)

    def test_invalid_token_format(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SSO_TOKEN_FORMAT", "autodetect")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        with pytest.raises(ValueError):
            load_templated_yaml(path)


class TestContext:
    def test_with_context_overrides_only_set_fields(self):
        original = get_config()
        override = ConfigData(sso=SSOConfig(expected_issuer="roundtable"))

        with with_context(override):
            config = get_config()
            assert config.sso.expected_issuer == "roundtable"
            assert config.sso.token_format == original.sso.token_format
            assert config.app.environment == original.app.environment

        assert get_config() is original

    def test_with_context_rejects_other_types(self):
        with pytest.raises(ValueError):
            with with_context({"sso": {}}):
                pass

    def test_set_config(self, test_config):
        original = get_config()
        try:
            set_config(test_config)
            assert get_config() is test_config
        finally:
            set_config(original)
