# Shared fixtures.
# Created: 2026-10-19

import asyncio

import pytest

from stelloauth.brands import BrandConfig, BrandConfigProvider, CountryConfig
from stelloauth.config import Settings, get_settings
from stelloauth.login import LoginAutomator

SAMPLE_CONFIGS = b"""{
  "MyPeugeot": {
    "oauth_url": "https://idpcvs.peugeot.com",
    "realm": "clientsB2CPeugeot",
    "scheme": "mymap",
    "configs": {
      "GB": {"locale": "en-GB", "client_id": "gb-client", "client_secret": "gb-secret"},
      "FR": {"locale": "fr-FR", "client_id": "fr-client", "client_secret": "fr-secret"}
    }
  },
  "MyOpel": {
    "oauth_url": "https://idpcvs.opel.com/",
    "realm": "clientsB2COpel",
    "scheme": "mymop",
    "configs": {
      "DE": {"locale": "de-DE", "client_id": "de-client", "client_secret": ""}
    }
  }
}"""


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(oauth_timeout=5.0, login_mode="http", rate_limit_requests=0)


@pytest.fixture
def peugeot() -> BrandConfig:
    return BrandConfig(
        oauth_url="https://idpcvs.peugeot.com",
        realm="clientsB2CPeugeot",
        scheme="mymap",
        countries={
            "GB": CountryConfig(locale="en-GB", client_id="gb-client", client_secret="gb-secret"),
        },
    )


class StaticProvider(BrandConfigProvider):
    """Provider serving SAMPLE_CONFIGS without touching the package data."""

    def __init__(self, raw: bytes = SAMPLE_CONFIGS):
        super().__init__()
        self._static = raw

    async def _refresh(self) -> None:
        from stelloauth.brands import parse_brand_configs

        if self._brands is None:
            self._raw = self._static
            self._brands = parse_brand_configs(self._static)


@pytest.fixture
def provider():
    return StaticProvider()


@pytest.fixture
def sample_configs() -> bytes:
    return SAMPLE_CONFIGS


class FakeAutomator(LoginAutomator):
    """Records its arguments, reports one step and returns a fixed code."""

    def __init__(self, code="the-code", delay=0.0, error=None):
        self.code = code
        self.delay = delay
        self.error = error
        self.calls = []

    async def login(self, authorize_url, email, password, scheme, progress):
        self.calls.append((authorize_url, email, password, scheme))
        progress.step("Submitting login...")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.code


@pytest.fixture
def fake_automator():
    """Factory for FakeAutomator instances."""
    return FakeAutomator
