"""HTML scraping helpers for the http login mode.

Parses pages with BeautifulSoup rather than matching raw markup, so attribute
order and quoting never matter: ``<input type="hidden" name="a" value="1">``
and ``<input value="1" type="hidden" name="a">`` read the same.
"""

from __future__ import annotations

import re
import urllib.parse

from bs4 import BeautifulSoup

_META_REFRESH_URL = re.compile(r"url\s*=\s*['\"]?([^'\";]+)", re.IGNORECASE)
_SCRIPT_REDIRECTS = (
    re.compile(r"location(?:\.href)?\s*=\s*['\"]([^'\"]+)['\"]"),
    re.compile(r"location\.(?:replace|assign)\(\s*['\"]([^'\"]+)['\"]"),
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_form_action(html: str, base_url: str) -> str:
    """Absolute submission target of the first form with an ``action``.

    Returns an empty string when the page has no such form.
    """
    form = _soup(html).find("form", action=True)
    if form is None:
        return ""
    return urllib.parse.urljoin(base_url, form["action"].strip())


def extract_hidden_fields(html: str) -> dict[str, str]:
    """All named ``<input type="hidden">`` fields as a name -> value mapping."""
    fields: dict[str, str] = {}
    for el in _soup(html).find_all("input"):
        if (el.get("type") or "").lower() != "hidden":
            continue
        name = el.get("name")
        if name:
            fields[name] = el.get("value", "")
    return fields


def extract_client_redirect(html: str, base_url: str) -> str | None:
    """Redirect target of a meta-refresh tag or a ``location`` script, if any."""
    soup = _soup(html)

    meta = soup.find("meta", attrs={"http-equiv": re.compile(r"^refresh$", re.IGNORECASE)})
    if meta is not None:
        match = _META_REFRESH_URL.search(meta.get("content", ""))
        if match:
            return urllib.parse.urljoin(base_url, match.group(1).strip())

    for script in soup.find_all("script"):
        text = script.string or ""
        for pattern in _SCRIPT_REDIRECTS:
            match = pattern.search(text)
            if match:
                # JSON-escaped slashes are common in inline scripts
                target = match.group(1).replace("\\/", "/")
                return urllib.parse.urljoin(base_url, target)
    return None


__all__ = ["extract_client_redirect", "extract_form_action", "extract_hidden_fields"]
