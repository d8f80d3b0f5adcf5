"""Unit tests for the post-login redirect."""

from urllib.parse import parse_qs, urlsplit

import pytest

from src.sso_bridge.core.services.sso.redirect import build_redirect_url

BASE = "https://app.example.com"


class TestBuildRedirectUrl:
    def test_minimal_redirect(self):
        assert (
            build_redirect_url(BASE) == "https://app.example.com/dashboard/billing/plans?step=2"
        )

    def test_forwards_price_and_billing(self):
        url = build_redirect_url(BASE, price="price_123", billing="annual")

        parts = urlsplit(url)
        assert parts.path == "/dashboard/billing/plans"
        assert parse_qs(parts.query) == {
            "price": ["price_123"],
            "billing": ["annual"],
            "step": ["2"],
        }

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_values_dropped(self, value):
        url = build_redirect_url(BASE, price=value, billing=value)
        assert parse_qs(urlsplit(url).query) == {"step": ["2"]}

    def test_values_trimmed_and_encoded(self):
        url = build_redirect_url(BASE, price="  price 1&x=y ", billing=" monthly")

        query = parse_qs(urlsplit(url).query)
        assert query["price"] == ["price 1&x=y"]
        assert query["billing"] == ["monthly"]
        assert "x" not in query

    def test_referrer_never_forwarded(self):
        url = build_redirect_url(BASE, price="p", referrer="http://evil.example")

        assert "evil" not in url
        assert urlsplit(url).netloc == "app.example.com"

    def test_trailing_slash_on_base(self):
        url = build_redirect_url("http://testserver/")
        assert url == "http://testserver/dashboard/billing/plans?step=2"

    def test_custom_path(self):
        url = build_redirect_url(BASE, path="/plans")
        assert url == "https://app.example.com/plans?step=2"
