# Browser login: drive the portal's Gigya login page with Playwright.
# Created: 2026-10-19
#
# The portal finishes by redirecting to <scheme>://oauth2redirect/..., which
# the browser cannot load. Network listeners catch that request and hand the
# URL to a CodeCapture slot; the page URL is checked as a last resort.

from __future__ import annotations

import logging
from collections.abc import Callable

from stelloauth.browser.driver import PortalBrowser
from stelloauth.config import DEFAULT_USER_AGENT
from stelloauth.errors import (
    AutomationError,
    CredentialsRejectedError,
    LoginFormNotFoundError,
    PortalUnavailableError,
)
from stelloauth.login.base import CodeCapture, LoginAutomator
from stelloauth.progress import ProgressReporter

logger = logging.getLogger(__name__)

# Gigya login form used by all Stellantis portals
EMAIL_SELECTOR = '#gigya-login-form input[name="username"]'
PASSWORD_SELECTOR = '#gigya-login-form input[name="password"]'
SUBMIT_SELECTOR = '#gigya-login-form input[type="submit"]'
# Consent page some portals show after login
AUTHORIZE_SELECTOR = '#cvs_from input[type="submit"]'

ERROR_PROBE_JS = """
() => {
    const el = document.querySelector('.gigya-error-msg, .error-message, [class*="error"]');
    return el && el.textContent ? el.textContent.trim() : '';
}
"""

BrowserFactory = Callable[[], PortalBrowser]


class BrowserLoginAutomator(LoginAutomator):
    """Login automator that runs one headless browser per login."""

    # Seconds; class attributes so deployments (and tests) can tune them
    SETTLE_DELAY = 0.5
    SUBMIT_WAIT = 5.0
    CONFIRM_TIMEOUT = 10.0
    CONFIRM_WAIT = 3.0
    FINAL_WAIT = 5.0

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        form_timeout: float = 30.0,
        browser_factory: BrowserFactory | None = None,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.form_timeout = form_timeout
        self._browser_factory = browser_factory or self._default_browser

    def _default_browser(self) -> PortalBrowser:
        return PortalBrowser(headless=self.headless, user_agent=self.user_agent)

    async def login(
        self,
        authorize_url: str,
        email: str,
        password: str,
        scheme: str,
        progress: ProgressReporter,
    ) -> str:
        capture = CodeCapture(scheme)

        progress.step("Starting browser...")
        async with self._browser_factory() as browser:
            self._listen(browser, capture)
            page = browser.page
            return await self._drive(page, capture, authorize_url, email, password, progress)

    @staticmethod
    def _listen(browser: PortalBrowser, capture: CodeCapture) -> None:
        """Offer every request URL and redirect target to ``capture``."""

        def on_request(request) -> None:
            capture.offer(request.url)

        def on_response(response) -> None:
            capture.offer(response.headers.get("location"))

        def on_request_failed(request) -> None:
            # Custom-scheme navigations always fail to load
            if not capture.offer(request.url) and capture.code is None:
                logger.debug("Request failed: %s (%s)", request.url, request.failure)

        context = browser.context
        context.on("request", on_request)
        context.on("response", on_response)
        context.on("requestfailed", on_request_failed)

    async def _drive(
        self,
        page,
        capture: CodeCapture,
        authorize_url: str,
        email: str,
        password: str,
        progress: ProgressReporter,
    ) -> str:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        progress.step("Loading login page...")
        try:
            await page.goto(authorize_url, wait_until="domcontentloaded")
            await page.wait_for_selector("body", state="attached")
        except PlaywrightError as e:
            raise PortalUnavailableError(f"failed to navigate: {e}") from e

        progress.step("Waiting for login form...")
        try:
            await page.wait_for_selector(
                EMAIL_SELECTOR, state="visible", timeout=self.form_timeout * 1000
            )
        except PlaywrightTimeoutError as e:
            html = await page.content()
            logger.info("Login form missing; page HTML length: %d", len(html))
            if "error" in html.lower():
                raise LoginFormNotFoundError(
                    "login form not found - the portal returned an error page"
                ) from e
            raise LoginFormNotFoundError("login form not found (timeout)") from e

        progress.step("Entering credentials...")
        try:
            await page.wait_for_selector(PASSWORD_SELECTOR, state="visible")
            await page.fill(EMAIL_SELECTOR, email)
            await page.fill(PASSWORD_SELECTOR, password)
            await page.wait_for_timeout(self.SETTLE_DELAY * 1000)

            progress.step("Submitting login...")
            await page.click(SUBMIT_SELECTOR)
        except PlaywrightError as e:
            raise AutomationError(f"failed to submit login: {e}") from e

        code = await capture.wait(self.SUBMIT_WAIT)
        if code:
            progress.step("Authentication successful!")
            return code

        try:
            error_text = await page.evaluate(ERROR_PROBE_JS)
        except PlaywrightError as e:
            # Page navigated away mid-probe
            logger.debug("Error probe skipped: %s", e)
            error_text = ""
        if error_text:
            raise CredentialsRejectedError(f"authentication failed: {error_text}")

        progress.step("Waiting for authorization...")
        try:
            await page.wait_for_selector(
                AUTHORIZE_SELECTOR, state="visible", timeout=self.CONFIRM_TIMEOUT * 1000
            )
        except PlaywrightTimeoutError:
            logger.debug("No authorization confirmation page")
        else:
            progress.step("Confirming authorization...")
            await page.click(AUTHORIZE_SELECTOR)
            await capture.wait(self.CONFIRM_WAIT)

        code = await capture.wait(self.FINAL_WAIT)
        if code is None:
            current_url = page.url
            logger.info("No redirect captured; current URL scheme: %s", current_url.split(":", 1)[0])
            capture.offer(current_url)
            code = capture.code
        if code:
            progress.step("Authentication successful!")
            return code

        raise AutomationError("authentication failed - could not retrieve OAuth code")


__all__ = [
    "AUTHORIZE_SELECTOR",
    "BrowserLoginAutomator",
    "EMAIL_SELECTOR",
    "PASSWORD_SELECTOR",
    "SUBMIT_SELECTOR",
]
