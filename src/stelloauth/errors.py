# Error taxonomy for the OAuth helper.
# Created: 2026-10-19
#
# Every error carries a human-readable message that is returned verbatim to
# the caller. Nothing here is retried automatically.

from __future__ import annotations


class StellOAuthError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputError(StellOAuthError):
    """The request itself is unusable (missing fields, unknown brand...)."""


class UnknownBrandError(InputError):
    def __init__(self, brand: str) -> None:
        super().__init__(f"unknown brand: {brand}")
        self.brand = brand


class UnknownCountryError(InputError):
    def __init__(self, brand: str, country: str) -> None:
        super().__init__(f"unknown country for brand {brand}: {country}")
        self.brand = brand
        self.country = country


# ---------------------------------------------------------------------------
# Automation
# ---------------------------------------------------------------------------


class AutomationError(StellOAuthError):
    """The portal login flow did not yield an authorization code."""


class LoginFormNotFoundError(AutomationError):
    """The login form never appeared (markup change or portal outage)."""


class CredentialsRejectedError(AutomationError):
    """The portal reported an error after the credentials were submitted."""


class CodeNotFoundError(AutomationError):
    """A custom-scheme redirect was seen but carried no ``code`` parameter."""


class RedirectLimitError(AutomationError):
    """Too many redirect hops without reaching the custom scheme."""


class AutomationTimeoutError(AutomationError):
    """The whole automation exceeded its wall-clock budget."""


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class InfrastructureError(StellOAuthError):
    """A dependency of the service (browser, network, config source) failed."""

    status_code = 502


class BrowserLaunchError(InfrastructureError):
    pass


class PortalUnavailableError(InfrastructureError):
    pass


class ConfigSourceError(InfrastructureError):
    pass


__all__ = [
    "AutomationError",
    "AutomationTimeoutError",
    "BrowserLaunchError",
    "CodeNotFoundError",
    "ConfigSourceError",
    "CredentialsRejectedError",
    "InfrastructureError",
    "InputError",
    "LoginFormNotFoundError",
    "PortalUnavailableError",
    "RedirectLimitError",
    "StellOAuthError",
    "UnknownBrandError",
    "UnknownCountryError",
]
