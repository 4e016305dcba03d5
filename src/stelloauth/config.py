"""Runtime settings for the OAuth helper.

All values come from environment variables prefixed with ``STELLOAUTH_``
(or a ``.env`` file in the working directory). ``PORT`` and ``HTTP_ADDRESS``
are honoured too so the service drops into container platforms that set them.
"""

from __future__ import annotations

import functools
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STELLOAUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("STELLOAUTH_HOST", "HTTP_ADDRESS"),
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("STELLOAUTH_PORT", "PORT"),
        description="Port the HTTP server listens on",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Login flow
    login_mode: Literal["browser", "http"] = Field(
        default="browser",
        description="'browser' drives headless Chrome, 'http' replays the login form",
    )
    oauth_timeout: float = Field(
        default=120.0, gt=0, description="Wall-clock budget for one login, in seconds"
    )
    form_timeout: float = Field(
        default=30.0, gt=0, description="How long to wait for the login form to appear"
    )
    max_redirects: int = Field(
        default=10, ge=1, description="Redirect hops followed by the http login mode"
    )
    headless: bool = Field(default=True, description="Run the browser without a window")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Brand configuration source
    configs_url: str | None = Field(
        default=None,
        description="Remote configs.json to proxy; the bundled copy is used when unset",
    )
    configs_cache_ttl: float = Field(
        default=3600.0, ge=0, description="Seconds a fetched remote config is reused"
    )
    scheme_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Per-brand custom URL scheme overrides, e.g. {\"MyOpel\": \"mymop\"}",
    )

    # Rate limiting (POST /oauth only)
    rate_limit_requests: int = Field(
        default=0, ge=0, description="Requests allowed per client per window; 0 disables"
    )
    rate_limit_window: float = Field(default=60.0, gt=0)

    @classmethod
    def load(cls) -> Settings:
        """Build settings from the current environment (uncached)."""
        return cls()


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings.load()


__all__ = ["DEFAULT_USER_AGENT", "Settings", "get_settings"]
