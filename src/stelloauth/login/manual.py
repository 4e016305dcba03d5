# Manual HTTP login: replay the portal's login form without a browser.
# Created: 2026-10-19
#
# Fetch the login page, scrape the form target and hidden fields, POST the
# credentials and walk the redirect chain by hand until a hop points at the
# brand's custom scheme. One httpx client (and cookie jar) per login.

from __future__ import annotations

import logging
import urllib.parse

import httpx

from stelloauth.authorize import extract_code, matches_scheme
from stelloauth.config import DEFAULT_USER_AGENT
from stelloauth.errors import (
    AutomationError,
    CredentialsRejectedError,
    LoginFormNotFoundError,
    PortalUnavailableError,
    RedirectLimitError,
)
from stelloauth.login.base import LoginAutomator
from stelloauth.login.forms import (
    extract_client_redirect,
    extract_form_action,
    extract_hidden_fields,
)
from stelloauth.progress import ProgressReporter

logger = logging.getLogger(__name__)

# Substrings that mark a rejected login. This is a guess at the portal's
# markup, not parsed error data, and can misfire on pages that merely
# mention the words.
_FAILURE_MARKERS = ("error", "invalid")


class HttpLoginAutomator(LoginAutomator):
    """Login automator built on ``httpx.AsyncClient``.

    Args:
        max_redirects: Hops followed after each request before giving up.
        user_agent: Sent with every request.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        max_redirects: int = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=False,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def login(
        self,
        authorize_url: str,
        email: str,
        password: str,
        scheme: str,
        progress: ProgressReporter,
    ) -> str:
        try:
            async with self._client() as client:
                return await self._run(client, authorize_url, email, password, scheme, progress)
        except httpx.HTTPError as e:
            raise PortalUnavailableError(f"portal request failed: {e}") from e

    async def _run(
        self,
        client: httpx.AsyncClient,
        authorize_url: str,
        email: str,
        password: str,
        scheme: str,
        progress: ProgressReporter,
    ) -> str:
        progress.step("Loading login page...")
        response = await client.get(authorize_url)
        response, code = await self._follow(client, response, scheme, body_redirects=False)
        if code:
            # Portal session cookie already valid: no form shown
            progress.step("Authentication successful!")
            return code

        progress.step("Parsing login form...")
        page_url = str(response.url)
        action = extract_form_action(response.text, page_url)
        if not action:
            raise LoginFormNotFoundError("could not find login form")

        payload = extract_hidden_fields(response.text)
        payload.update({"username": email, "password": password, "rememberMe": "true"})

        progress.step("Submitting login...")
        logger.debug("Posting login form to %s", action)
        response = await client.post(action, data=payload, headers={"Referer": page_url})
        response, code = await self._follow(client, response, scheme, body_redirects=True)
        if code:
            progress.step("Authentication successful!")
            return code

        body = response.text.lower()
        if any(marker in body for marker in _FAILURE_MARKERS):
            raise CredentialsRejectedError(
                "authentication failed - check your email and password"
            )
        raise AutomationError("authentication failed - could not retrieve OAuth code")

    async def _follow(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        scheme: str,
        body_redirects: bool,
    ) -> tuple[httpx.Response, str | None]:
        """Walk redirects from ``response`` until a page or a custom-scheme hop.

        Returns the last response and, when a hop targeted the custom scheme,
        the code it carried.

        Raises:
            RedirectLimitError: more than ``max_redirects`` hops.
        """
        hops = 0
        while True:
            target = self._next_hop(response, body_redirects)
            if target is None:
                return response, None
            if matches_scheme(target, scheme):
                return response, extract_code(target)

            hops += 1
            if hops > self.max_redirects:
                raise RedirectLimitError(
                    f"authentication failed - gave up after {self.max_redirects} redirects"
                )
            logger.debug("Following redirect %d to %s", hops, target)
            response = await client.get(target)

    @staticmethod
    def _next_hop(response: httpx.Response, body_redirects: bool) -> str | None:
        location = response.headers.get("location")
        if location:
            # A Location on a non-3xx response still names the next hop
            return urllib.parse.urljoin(str(response.url), location)
        if response.is_redirect:
            return None
        if body_redirects:
            return extract_client_redirect(response.text, str(response.url))
        return None


__all__ = ["HttpLoginAutomator"]
