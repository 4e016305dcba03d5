# Tests for the manual HTTP login automator.
# Created: 2026-10-19

import urllib.parse

import httpx
import pytest

from stelloauth.errors import (
    AutomationError,
    CodeNotFoundError,
    CredentialsRejectedError,
    LoginFormNotFoundError,
    PortalUnavailableError,
    RedirectLimitError,
)
from stelloauth.login.manual import HttpLoginAutomator
from stelloauth.progress import ProgressReporter

PORTAL = "https://idpcvs.peugeot.com"
AUTHORIZE_URL = (
    f"{PORTAL}/am/oauth2/authorize?client_id=gb-client&response_type=code"
    "&redirect_uri=mymap%3A%2F%2Foauth2redirect%2Fgb&scope=openid%20profile%20email&locale=en-GB"
)

LOGIN_PAGE = """
<html><body>
  <form id="gigya-login-form" method="post" action="/am/login">
    <input value="tok-1" type="hidden" name="csrf">
    <input type="hidden" name="goto" value="/am/oauth2/authorize">
    <input type="text" name="username">
    <input type="password" name="password">
  </form>
</body></html>
"""


class FakePortal:
    """Routes requests for a fake identity portal.

    ``after_login`` is the response returned for the credentials POST;
    extra routes can be added to ``routes``.
    """

    def __init__(self, after_login: httpx.Response, login_page: str = LOGIN_PAGE):
        self.after_login = after_login
        self.login_page = login_page
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/am/oauth2/authorize":
            return httpx.Response(302, headers={"Location": "/am/XUI/login"})
        if path == "/am/XUI/login":
            return httpx.Response(
                200,
                text=self.login_page,
                headers={"Set-Cookie": "amlbcookie=01; Path=/"},
            )
        if path == "/am/login" and request.method == "POST":
            return self.after_login
        if path in self.routes:
            return self.routes[path]
        return httpx.Response(404, text="not found")

    @property
    def login_post(self) -> httpx.Request:
        return next(r for r in self.requests if r.method == "POST")


def make_automator(portal, max_redirects=10) -> HttpLoginAutomator:
    return HttpLoginAutomator(
        max_redirects=max_redirects, transport=httpx.MockTransport(portal)
    )


async def run_login(automator, progress=None) -> str:
    return await automator.login(
        AUTHORIZE_URL,
        "driver@example.com",
        "hunter2",
        "mymap",
        progress or ProgressReporter(),
    )


class TestHttpLoginSuccess:
    """Successful flows."""

    @pytest.mark.asyncio
    async def test_location_header_code(self):
        """Should return the code from a custom-scheme Location header."""
        portal = FakePortal(
            httpx.Response(302, headers={"Location": "mymap://oauth2redirect/gb?code=abc123"})
        )
        assert await run_login(make_automator(portal)) == "abc123"

    @pytest.mark.asyncio
    async def test_posts_credentials_and_hidden_fields(self):
        portal = FakePortal(
            httpx.Response(302, headers={"Location": "mymap://oauth2redirect/gb?code=abc123"})
        )
        await run_login(make_automator(portal))

        form = urllib.parse.parse_qs(portal.login_post.content.decode())
        assert form["username"] == ["driver@example.com"]
        assert form["password"] == ["hunter2"]
        assert form["rememberMe"] == ["true"]
        assert form["csrf"] == ["tok-1"]
        assert form["goto"] == ["/am/oauth2/authorize"]
        assert str(portal.login_post.url) == f"{PORTAL}/am/login"

    @pytest.mark.asyncio
    async def test_cookies_carried_across_requests(self):
        portal = FakePortal(
            httpx.Response(302, headers={"Location": "mymap://oauth2redirect/gb?code=abc123"})
        )
        await run_login(make_automator(portal))
        assert "amlbcookie=01" in portal.login_post.headers.get("cookie", "")

    @pytest.mark.asyncio
    async def test_follows_redirect_chain_to_code(self):
        portal = FakePortal(httpx.Response(302, headers={"Location": "/am/consent"}))
        portal.routes["/am/consent"] = httpx.Response(
            303, headers={"Location": "mymap://oauth2redirect/gb?code=chained"}
        )
        assert await run_login(make_automator(portal)) == "chained"

    @pytest.mark.asyncio
    async def test_follows_body_redirects(self):
        """Meta refresh and script redirects count as hops."""
        portal = FakePortal(
            httpx.Response(200, text='<meta http-equiv="refresh" content="0; url=/am/next">')
        )
        portal.routes["/am/next"] = httpx.Response(
            200,
            text='<script>window.location.href = "mymap://oauth2redirect/gb?code=scripted";</script>',
        )
        assert await run_login(make_automator(portal)) == "scripted"

    @pytest.mark.asyncio
    async def test_exactly_max_redirects_allowed(self):
        portal = FakePortal(httpx.Response(302, headers={"Location": "/hop/1"}))
        for n in range(1, 10):
            portal.routes[f"/hop/{n}"] = httpx.Response(
                302, headers={"Location": f"/hop/{n + 1}"}
            )
        portal.routes["/hop/10"] = httpx.Response(
            302, headers={"Location": "mymap://oauth2redirect/gb?code=edge"}
        )
        assert await run_login(make_automator(portal, max_redirects=10)) == "edge"

    @pytest.mark.asyncio
    async def test_reports_progress_in_order(self):
        portal = FakePortal(
            httpx.Response(302, headers={"Location": "mymap://oauth2redirect/gb?code=abc123"})
        )
        progress = ProgressReporter()
        await run_login(make_automator(portal), progress)
        assert progress.steps == [
            "Loading login page...",
            "Parsing login form...",
            "Submitting login...",
            "Authentication successful!",
        ]


class TestHttpLoginFailures:
    """Terminal failures."""

    @pytest.mark.asyncio
    async def test_redirect_chain_is_bounded(self):
        """Eleven same-scheme hops should fail instead of looping forever."""
        portal = FakePortal(httpx.Response(302, headers={"Location": "/hop/1"}))
        for n in range(1, 20):
            portal.routes[f"/hop/{n}"] = httpx.Response(
                302, headers={"Location": f"/hop/{n + 1}"}
            )

        with pytest.raises(RedirectLimitError):
            await run_login(make_automator(portal, max_redirects=10))

        hops = [r for r in portal.requests if r.url.path.startswith("/hop/")]
        assert len(hops) == 10

    @pytest.mark.asyncio
    async def test_no_login_form(self):
        portal = FakePortal(httpx.Response(200), login_page="<html><p>Maintenance</p></html>")
        with pytest.raises(LoginFormNotFoundError, match="could not find login form"):
            await run_login(make_automator(portal))

    @pytest.mark.asyncio
    async def test_error_page_means_rejected_credentials(self):
        portal = FakePortal(
            httpx.Response(200, text="<div class='msg'>Invalid login or password</div>")
        )
        with pytest.raises(CredentialsRejectedError, match="check your email and password"):
            await run_login(make_automator(portal))

    @pytest.mark.asyncio
    async def test_no_code_and_no_error_marker(self):
        portal = FakePortal(httpx.Response(200, text="<p>Welcome back</p>"))
        with pytest.raises(AutomationError, match="could not retrieve OAuth code") as exc_info:
            await run_login(make_automator(portal))
        assert type(exc_info.value) is AutomationError

    @pytest.mark.asyncio
    async def test_denied_redirect(self):
        portal = FakePortal(
            httpx.Response(
                302, headers={"Location": "mymap://oauth2redirect/gb?error=access_denied"}
            )
        )
        with pytest.raises(CodeNotFoundError, match="access_denied"):
            await run_login(make_automator(portal))

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        automator = HttpLoginAutomator(transport=httpx.MockTransport(handler))
        with pytest.raises(PortalUnavailableError, match="portal request failed"):
            await run_login(automator)
