# OAuth orchestration: validate, resolve brand, build URL, run the automator.
# Created: 2026-10-19

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import BaseModel, field_validator

from stelloauth.authorize import build_authorize_url, build_redirect_uri
from stelloauth.brands import BrandConfig, BrandConfigProvider, CountryConfig
from stelloauth.config import Settings
from stelloauth.errors import AutomationTimeoutError, InputError
from stelloauth.login import LoginAutomator, create_automator
from stelloauth.progress import ProgressReporter

logger = logging.getLogger(__name__)


class OAuthRequest(BaseModel):
    """Body of ``POST /oauth``."""

    brand: str = ""
    country: str = ""
    email: str = ""
    password: str = ""

    @field_validator("brand", "country", "email", "password", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return "" if value is None else value

    def is_complete(self) -> bool:
        return all((self.brand, self.country, self.email, self.password))


class OAuthData(BaseModel):
    code: str


class OAuthResponse(BaseModel):
    """Buffered result envelope: ``data`` on success, ``message`` on error."""

    status: str
    message: str | None = None
    data: OAuthData | None = None

    @classmethod
    def success(cls, code: str) -> OAuthResponse:
        return cls(status="success", data=OAuthData(code=code))

    @classmethod
    def error(cls, message: str) -> OAuthResponse:
        return cls(status="error", message=message)


@dataclass(frozen=True)
class LoginPlan:
    """Everything the automator needs, resolved before it starts."""

    brand: str
    country: str
    brand_config: BrandConfig
    country_config: CountryConfig
    scheme: str
    redirect_uri: str
    authorize_url: str


class OAuthService:
    """Runs one login per call; holds no per-request state."""

    def __init__(
        self,
        settings: Settings,
        provider: BrandConfigProvider,
        automator: LoginAutomator | None = None,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.automator = automator or create_automator(settings)

    async def prepare(self, request: OAuthRequest) -> LoginPlan:
        """Validate the request and resolve its brand/country.

        Raises:
            InputError: missing fields, unknown brand or unknown country.
        """
        if not request.is_complete():
            raise InputError("All fields are required")

        brand_config, country_config = await self.provider.lookup(request.brand, request.country)
        scheme = self.settings.scheme_overrides.get(request.brand, brand_config.scheme)
        return LoginPlan(
            brand=request.brand,
            country=request.country,
            brand_config=brand_config,
            country_config=country_config,
            scheme=scheme,
            redirect_uri=build_redirect_uri(scheme, request.country),
            authorize_url=build_authorize_url(
                brand_config, country_config, request.country, scheme=scheme
            ),
        )

    async def execute(
        self,
        plan: LoginPlan,
        request: OAuthRequest,
        progress: ProgressReporter | None = None,
    ) -> str:
        """Run the automator under the configured wall-clock timeout."""
        progress = progress or ProgressReporter()
        progress.step("Preparing authentication...")
        logger.info(
            "Starting OAuth flow for %s/%s (%s mode)",
            plan.brand,
            plan.country,
            self.settings.login_mode,
        )

        timeout = self.settings.oauth_timeout
        try:
            code = await asyncio.wait_for(
                self.automator.login(
                    plan.authorize_url,
                    request.email,
                    request.password,
                    plan.scheme,
                    progress,
                ),
                timeout=timeout,
            )
        except TimeoutError as e:
            raise AutomationTimeoutError(
                f"authentication timed out after {timeout:g} seconds"
            ) from e

        logger.info("OAuth flow for %s/%s succeeded", plan.brand, plan.country)
        return code

    async def perform(
        self, request: OAuthRequest, progress: ProgressReporter | None = None
    ) -> str:
        plan = await self.prepare(request)
        return await self.execute(plan, request, progress)


__all__ = [
    "LoginPlan",
    "OAuthData",
    "OAuthRequest",
    "OAuthResponse",
    "OAuthService",
]
