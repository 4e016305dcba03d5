# Tests for the authorization URL builder and code extraction.
# Created: 2026-10-19

import urllib.parse

import pytest

from stelloauth.authorize import (
    build_authorize_url,
    build_redirect_uri,
    extract_code,
    matches_scheme,
)
from stelloauth.errors import CodeNotFoundError


class TestRedirectUri:
    def test_lowercases_country(self):
        assert build_redirect_uri("mymap", "GB") == "mymap://oauth2redirect/gb"

    def test_uses_scheme(self):
        assert build_redirect_uri("mymop", "de") == "mymop://oauth2redirect/de"


class TestAuthorizeUrl:
    """Tests for build_authorize_url."""

    def test_endpoint_path(self, peugeot):
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        assert url.startswith("https://idpcvs.peugeot.com/am/oauth2/authorize?")

    def test_contains_required_params(self, peugeot):
        """Should carry client_id, response_type, redirect_uri, scope and locale."""
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)

        assert query["client_id"] == ["gb-client"]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == ["mymap://oauth2redirect/gb"]
        assert query["scope"] == ["openid profile email"]
        assert query["locale"] == ["en-GB"]

    def test_redirect_uri_is_url_encoded(self, peugeot):
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        assert "redirect_uri=mymap%3A%2F%2Foauth2redirect%2Fgb" in url

    def test_scope_spaces_encoded_as_percent20(self, peugeot):
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        assert "scope=openid%20profile%20email" in url

    def test_never_contains_client_secret(self, peugeot):
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        assert "gb-secret" not in url
        assert "client_secret" not in url

    def test_scheme_override(self, peugeot):
        url = build_authorize_url(peugeot, peugeot.countries["GB"], "GB", scheme="custom")
        assert "custom%3A%2F%2Foauth2redirect%2Fgb" in url

    def test_trailing_slash_on_base_url(self, peugeot):
        brand = peugeot.model_copy(update={"oauth_url": "https://idpcvs.peugeot.com/"})
        url = build_authorize_url(brand, brand.countries["GB"], "GB")
        assert "//am/" not in url

    def test_deterministic(self, peugeot):
        first = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        second = build_authorize_url(peugeot, peugeot.countries["GB"], "GB")
        assert first == second


class TestExtractCode:
    """Tests for extract_code."""

    def test_extracts_code(self):
        assert extract_code("mymap://oauth2redirect/gb?code=abc123") == "abc123"

    def test_extracts_code_among_other_params(self):
        url = "mymap://oauth2redirect/gb?state=xyz&code=abc123&iss=portal"
        assert extract_code(url) == "abc123"

    def test_error_without_code_fails(self):
        """A denied authorization should fail and mention the portal error."""
        with pytest.raises(CodeNotFoundError, match="access_denied"):
            extract_code("mymap://oauth2redirect/gb?error=access_denied")

    def test_error_description_included(self):
        url = "mymap://oauth2redirect/gb?error=access_denied&error_description=User+cancelled"
        with pytest.raises(CodeNotFoundError, match="User cancelled"):
            extract_code(url)

    def test_no_query_fails(self):
        with pytest.raises(CodeNotFoundError):
            extract_code("mymap://oauth2redirect/gb")

    def test_empty_code_fails(self):
        with pytest.raises(CodeNotFoundError):
            extract_code("mymap://oauth2redirect/gb?code=")


class TestMatchesScheme:
    def test_match(self):
        assert matches_scheme("mymap://oauth2redirect/gb?code=1", "mymap")

    def test_prefix_of_other_scheme_does_not_match(self):
        assert not matches_scheme("mymapx://oauth2redirect/gb", "mymap")

    def test_https_does_not_match(self):
        assert not matches_scheme("https://idpcvs.peugeot.com/login", "mymap")
