"""Login automators: headless browser or manual HTTP form replay."""

from __future__ import annotations

from stelloauth.config import Settings
from stelloauth.login.base import CodeCapture, LoginAutomator


def create_automator(settings: Settings) -> LoginAutomator:
    """Build the automator selected by ``settings.login_mode``."""
    if settings.login_mode == "http":
        from stelloauth.login.manual import HttpLoginAutomator

        return HttpLoginAutomator(
            max_redirects=settings.max_redirects,
            user_agent=settings.user_agent,
        )

    from stelloauth.login.browser import BrowserLoginAutomator

    return BrowserLoginAutomator(
        headless=settings.headless,
        user_agent=settings.user_agent,
        form_timeout=settings.form_timeout,
    )


__all__ = ["CodeCapture", "LoginAutomator", "create_automator"]
