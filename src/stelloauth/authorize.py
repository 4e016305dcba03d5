# Authorization URL builder and redirect parsing.
# Created: 2026-10-19

from __future__ import annotations

import urllib.parse

from stelloauth.brands import BrandConfig, CountryConfig
from stelloauth.errors import CodeNotFoundError

AUTHORIZE_PATH = "/am/oauth2/authorize"
SCOPES = ("openid", "profile", "email")


def build_redirect_uri(scheme: str, country: str) -> str:
    """Custom-scheme redirect the portal sends the code to."""
    return f"{scheme}://oauth2redirect/{country.lower()}"


def build_authorize_url(
    brand: BrandConfig,
    country_config: CountryConfig,
    country: str,
    scheme: str | None = None,
) -> str:
    """Build the portal's authorize endpoint URL for a public-client code flow.

    Args:
        brand: Brand settings (base URL, default scheme).
        country_config: Client registration for ``country``.
        country: Country code, lower-cased into the redirect path.
        scheme: Overrides ``brand.scheme`` when given.

    Returns:
        The authorize URL. The client secret is never included.
    """
    redirect_uri = build_redirect_uri(scheme or brand.scheme, country)
    params = {
        "client_id": country_config.client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": " ".join(SCOPES),
        "locale": country_config.locale,
    }
    query = urllib.parse.urlencode(params, quote_via=urllib.parse.quote)
    return f"{brand.oauth_url.rstrip('/')}{AUTHORIZE_PATH}?{query}"


def matches_scheme(url: str, scheme: str) -> bool:
    return url.startswith(f"{scheme}://")


def extract_code(url: str) -> str:
    """Pull the ``code`` query parameter out of a redirect URL.

    Raises:
        CodeNotFoundError: no non-empty ``code`` parameter. When the portal
            sent ``error``/``error_description`` instead, they are quoted.
    """
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    codes = query.get("code")
    if codes and codes[0]:
        return codes[0]

    error = query.get("error", [""])[0]
    if error:
        description = query.get("error_description", [""])[0]
        detail = f"{error} ({description})" if description else error
        raise CodeNotFoundError(f"authorization denied by portal: {detail}")
    raise CodeNotFoundError("redirect did not contain an authorization code")


__all__ = [
    "AUTHORIZE_PATH",
    "SCOPES",
    "build_authorize_url",
    "build_redirect_uri",
    "extract_code",
    "matches_scheme",
]
