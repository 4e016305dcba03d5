# Brand configuration store.
# Created: 2026-10-19
#
# Maps brand -> {oauth_url, realm, scheme, per-country {locale, client_id,
# client_secret}}. The document is either the copy bundled with the package
# or a remote configs.json fetched with httpx and cached for a TTL.

from __future__ import annotations

import asyncio
import logging
import time
from importlib import resources

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from stelloauth.errors import ConfigSourceError, UnknownBrandError, UnknownCountryError

logger = logging.getLogger(__name__)

BUNDLED_CONFIG = "configs.json"


class CountryConfig(BaseModel):
    """OAuth client registration for one country of a brand."""

    model_config = ConfigDict(frozen=True)

    locale: str
    client_id: str
    # Carried for completeness; the authorization-code request never sends it.
    client_secret: str = ""


class BrandConfig(BaseModel):
    """Identity portal settings shared by every country of a brand."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    oauth_url: str
    realm: str = ""
    scheme: str
    countries: dict[str, CountryConfig] = Field(default_factory=dict, alias="configs")


_BrandMap = TypeAdapter(dict[str, BrandConfig])


def parse_brand_configs(raw: bytes | str) -> dict[str, BrandConfig]:
    """Validate a configs.json document."""
    return _BrandMap.validate_json(raw)


def load_bundled_bytes() -> bytes:
    """Return the configs.json shipped inside the package."""
    return resources.files("stelloauth").joinpath(BUNDLED_CONFIG).read_bytes()


class BrandConfigProvider:
    """Serves the brand configuration, bundled or fetched from ``url``.

    Parsed documents are immutable and shared by every request. A remote
    document is refreshed at most once per ``cache_ttl`` seconds.
    """

    def __init__(
        self,
        url: str | None = None,
        cache_ttl: float = 3600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.cache_ttl = cache_ttl
        self._transport = transport
        self._raw: bytes | None = None
        self._brands: dict[str, BrandConfig] | None = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def is_remote(self) -> bool:
        return bool(self.url)

    def _is_fresh(self) -> bool:
        if self._brands is None:
            return False
        if not self.is_remote:
            return True
        return time.monotonic() - self._fetched_at < self.cache_ttl

    async def _refresh(self) -> None:
        async with self._lock:
            if self._is_fresh():
                return
            raw = await self._fetch_remote() if self.is_remote else load_bundled_bytes()
            try:
                brands = parse_brand_configs(raw)
            except ValidationError as e:
                raise ConfigSourceError(f"failed to parse configs: {e.error_count()} errors") from e
            self._raw = raw
            self._brands = brands
            self._fetched_at = time.monotonic()
            logger.info(
                "Loaded %d brand configs from %s",
                len(brands),
                self.url if self.is_remote else "bundled copy",
            )

    async def _fetch_remote(self) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as e:
            raise ConfigSourceError(f"failed to fetch configs from {self.url}: {e}") from e

    async def raw(self) -> bytes:
        """The configuration document exactly as served to the UI."""
        await self._refresh()
        return self._raw

    async def brands(self) -> dict[str, BrandConfig]:
        await self._refresh()
        return self._brands

    async def lookup(self, brand: str, country: str) -> tuple[BrandConfig, CountryConfig]:
        """Resolve a brand/country pair or raise an input error naming the culprit."""
        brands = await self.brands()
        brand_config = brands.get(brand)
        if brand_config is None:
            raise UnknownBrandError(brand)
        country_config = brand_config.countries.get(country)
        if country_config is None:
            raise UnknownCountryError(brand, country)
        return brand_config, country_config


__all__ = [
    "BrandConfig",
    "BrandConfigProvider",
    "CountryConfig",
    "load_bundled_bytes",
    "parse_brand_configs",
]
