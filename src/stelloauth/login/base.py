# Login automator interface and the one-shot code capture slot.
# Created: 2026-10-19

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from stelloauth.authorize import extract_code, matches_scheme
from stelloauth.errors import CodeNotFoundError
from stelloauth.progress import ProgressReporter

logger = logging.getLogger(__name__)


class CodeCapture:
    """Set-once, read-many slot for the authorization code of one run.

    Every URL observed during the run is offered; the first custom-scheme URL
    carrying a ``code`` fills the slot and later offers are ignored.
    """

    def __init__(self, scheme: str) -> None:
        self.scheme = scheme
        self._future: asyncio.Future[str] = asyncio.get_running_loop().create_future()

    @property
    def code(self) -> str | None:
        if self._future.done():
            return self._future.result()
        return None

    def offer(self, url: str | None) -> bool:
        """Capture the code from ``url`` if it is a custom-scheme redirect.

        Returns True only for the offer that filled the slot.
        """
        if not url or self._future.done() or not matches_scheme(url, self.scheme):
            return False
        try:
            code = extract_code(url)
        except CodeNotFoundError as e:
            logger.warning("Custom-scheme redirect without code: %s", e)
            return False
        self._future.set_result(code)
        logger.info("Captured OAuth code from redirect")
        return True

    async def wait(self, timeout: float) -> str | None:
        """Wait up to ``timeout`` seconds for the code; None if it never came."""
        if self._future.done():
            return self._future.result()
        if timeout <= 0:
            return None
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except TimeoutError:
            return None


class LoginAutomator(ABC):
    """Drives a portal login and returns the authorization code."""

    @abstractmethod
    async def login(
        self,
        authorize_url: str,
        email: str,
        password: str,
        scheme: str,
        progress: ProgressReporter,
    ) -> str:
        """Run the login flow.

        Args:
            authorize_url: Portal authorize endpoint (see ``build_authorize_url``).
            email: Portal account email.
            password: Portal account password.
            scheme: Custom URL scheme of the redirect carrying the code.
            progress: Receives a phrase at each step boundary.

        Returns:
            The authorization code.

        Raises:
            AutomationError: the flow ended without a code.
            InfrastructureError: browser or network failure.
        """
