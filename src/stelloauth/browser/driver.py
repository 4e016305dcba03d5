# Playwright browser wrapper for portal logins
#
# One PortalBrowser per login: a headless Chrome with container-friendly flags
# and a fresh, isolated context. Uses system Chrome if available, falls back
# to Playwright's Chromium and installs it on first use.
"""Playwright browser wrapper."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from stelloauth.config import DEFAULT_USER_AGENT
from stelloauth.errors import BrowserLaunchError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


class PortalBrowser:
    """Headless browser session scoped to a single login.

    Usage:
        async with PortalBrowser() as browser:
            await browser.page.goto(authorize_url)
    """

    DEFAULT_VIEWPORT = {"width": 1280, "height": 720}

    # Sandboxing and GPU are unavailable in most containers
    LAUNCH_ARGS = (
        "--no-sandbox",
        "--disable-gpu",
        "--disable-dev-shm-usage",
        "--disable-extensions",
        "--disable-background-networking",
    )

    def __init__(self, headless: bool = True, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

        # Fail fast with a helpful message when the extra is missing
        try:
            import playwright  # noqa: F401
        except ImportError:
            from stelloauth._compat import require_extra

            require_extra("playwright", "browser")

    async def __aenter__(self) -> PortalBrowser:
        try:
            await self.launch()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_launched(self) -> bool:
        return self._browser is not None and self._page is not None

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Browser not launched. Call launch() first.")
        return self._context

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser not launched. Call launch() first.")
        return self._page

    @property
    def current_url(self) -> str | None:
        if self._page is None:
            return None
        return self._page.url

    async def _launch_browser(self, **kwargs) -> Browser:
        return await self._playwright.chromium.launch(
            headless=self.headless,
            args=list(self.LAUNCH_ARGS),
            **kwargs,
        )

    async def launch(self) -> None:
        """Start Playwright, the browser and an isolated context.

        Tries in order:
        1. System Chrome (no download needed)
        2. Playwright's bundled Chromium (auto-installs if missing)

        Raises:
            BrowserLaunchError: no browser could be started.
        """
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()

        try:
            self._browser = await self._launch_browser(channel="chrome")
            logger.info("Using system Chrome")
        except Exception as e:
            logger.debug("System Chrome not available: %s", e)
            try:
                self._browser = await self._launch_browser()
                logger.info("Using Playwright Chromium")
            except Exception as launch_error:
                if "Executable doesn't exist" not in str(launch_error):
                    raise BrowserLaunchError(f"failed to start browser: {launch_error}") from launch_error
                logger.info("Installing Chromium browser (one-time download)...")
                await self._install_chromium()
                try:
                    self._browser = await self._launch_browser()
                except Exception as retry_error:
                    raise BrowserLaunchError(f"failed to start browser: {retry_error}") from retry_error
                logger.info("Using Playwright Chromium (freshly installed)")

        self._context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport=self.DEFAULT_VIEWPORT,
        )
        self._page = await self._context.new_page()

    async def _install_chromium(self) -> None:
        """Auto-install Playwright's Chromium browser."""
        logger.info("Downloading Chromium browser (~150MB)...")

        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            error_msg = stderr.decode() if stderr else "Unknown error"
            raise BrowserLaunchError(f"Failed to install Chromium: {error_msg}")

        logger.info("Chromium installed successfully")

    async def close(self) -> None:
        """Close the context, the browser and Playwright. Idempotent."""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception:
                logger.debug("Browser context already gone", exc_info=True)
            self._context = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self._page = None


__all__ = ["PortalBrowser"]
