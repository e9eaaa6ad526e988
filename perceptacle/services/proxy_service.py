"""Server-side proxies for third-party geodata APIs.

The browser calls these instead of the upstream services so that requests
avoid CORS restrictions and API keys stay on the server.  Passthroughs hand
back the upstream status, body and content type unchanged; only a transport
failure is turned into a :class:`GatewayError` (HTTP 502).  The keyed JSON
proxies also raise it when the upstream body is not JSON.

    /api/photon            → Photon search (all query params forwarded)
    /api/census/oneline    → Census one-line address lookup
    /api/census/address    → Census structured address lookup
    /api/opencage          → OpenCage (key attached, responses cached)
    /api/3wa               → what3words convert-to-3wa (key attached)
    /api/nasa/apod|epic    → NASA APOD / EPIC (key attached)
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx
from pydantic import BaseModel, ConfigDict

from perceptacle.config.settings import Settings
from perceptacle.interfaces.cache_provider import ICacheProvider
from perceptacle.utils.errors import ConfigurationError, GatewayError, InvalidInputError
from perceptacle.utils.logging import get_logger

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
PASSTHROUGH_CACHE_CONTROL = "public, max-age=300"

OPENCAGE_MAX_QUERY = 200
OPENCAGE_DEFAULT_LIMIT = 5
OPENCAGE_MAX_LIMIT = 10


class ProxyResponse(BaseModel):
    """An upstream answer to relay to the client as-is."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: bytes
    content_type: str = JSON_CONTENT_TYPE
    cache_control: str | None = None

    @classmethod
    def from_json(cls, status_code: int, data: Any) -> ProxyResponse:
        return cls(status_code=status_code, body=json.dumps(data).encode("utf-8"))


def clamp_limit(raw: Any, default: int = OPENCAGE_DEFAULT_LIMIT, upper: int = OPENCAGE_MAX_LIMIT) -> int:
    """Parse *raw* as an int and clamp it to ``1..upper``; junk gives *default*."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if value == 0:
        value = default
    return min(max(value, 1), upper)


class UpstreamProxy:
    """Relays browser requests to upstream APIs with server-held keys.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``.
    settings:
        Source of upstream URLs, API keys and the User-Agent.
    opencage_cache:
        Cache for OpenCage responses (5 minutes, 300 entries in production).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        opencage_cache: ICacheProvider,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._opencage_cache = opencage_cache
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Geocoding passthroughs
    # ------------------------------------------------------------------

    async def photon(self, params: Mapping[str, str]) -> ProxyResponse:
        url = f"{self._settings.photon_url.rstrip('/')}/api/"
        return await self._passthrough("photon", url, dict(params), PASSTHROUGH_CACHE_CONTROL)

    async def census_oneline(self, address: str | None, benchmark: str | None = None) -> ProxyResponse:
        url = f"{self._settings.census_url.rstrip('/')}/locations/onelineaddress"
        params = {
            "address": address or "",
            "benchmark": benchmark or "Public_AR_Current",
            "format": "json",
        }
        return await self._passthrough("census-oneline", url, params, PASSTHROUGH_CACHE_CONTROL)

    async def census_address(
        self,
        street: str | None = None,
        city: str | None = None,
        state: str | None = None,
        zip_code: str | None = None,
        benchmark: str | None = None,
    ) -> ProxyResponse:
        url = f"{self._settings.census_url.rstrip('/')}/locations/address"
        params: dict[str, str] = {}
        for name, value in (("street", street), ("city", city), ("state", state), ("zip", zip_code)):
            if value:
                params[name] = value
        params["benchmark"] = benchmark or "Public_AR_Current"
        params["format"] = "json"
        return await self._passthrough("census-address", url, params, PASSTHROUGH_CACHE_CONTROL)

    async def opencage(
        self,
        q: str | None,
        limit: Any = None,
        language: str | None = None,
        no_annotations: str | None = None,
        countrycode: str | None = None,
        proximity: str | None = None,
    ) -> ProxyResponse:
        """Forward an OpenCage search, serving repeats from the cache."""
        key = self._settings.opencage_key.strip()
        if not key:
            raise ConfigurationError("Missing OPENCAGE_KEY", provider_name="opencage")

        options = {
            "q": (q or "")[:OPENCAGE_MAX_QUERY],
            "limit": clamp_limit(limit),
            "language": language or None,
            "no_annotations": no_annotations or None,
            "countrycode": countrycode or None,
            "proximity": proximity or None,
        }
        cache_key = json.dumps(options, sort_keys=True)
        cached = await self._opencage_cache.get(cache_key)
        if cached is not None:
            return cached

        params = {"key": key, **{k: v for k, v in options.items() if v is not None}}
        response = await self._passthrough("opencage", self._settings.opencage_url, params)
        await self._opencage_cache.set(cache_key, response)
        return response

    # ------------------------------------------------------------------
    # Keyed JSON APIs
    # ------------------------------------------------------------------

    async def what3words(self, lat: str | None, lon: str | None) -> ProxyResponse:
        """Convert a coordinate to a what3words address.

        Returns ``{"words": ...}`` on success, otherwise the upstream status
        and error body.
        """
        if not lat or not lon:
            raise InvalidInputError("Missing lat/lon")
        key = self._settings.w3w_api_key.strip()
        if not key:
            raise ConfigurationError("Missing W3W_API_KEY", provider_name="what3words")

        url = f"{self._settings.w3w_url.rstrip('/')}/convert-to-3wa"
        params = {"coordinates": f"{lat},{lon}", "key": key, "language": "en"}
        status, data = await self._get_json("what3words", url, params)
        if 200 <= status < 300 and isinstance(data, dict) and data.get("words"):
            return ProxyResponse.from_json(200, {"words": data["words"]})
        return ProxyResponse.from_json(status, data)

    async def nasa_apod(self) -> ProxyResponse:
        url = f"{self._settings.nasa_url.rstrip('/')}/planetary/apod"
        params = {"api_key": self._nasa_key(), "thumbs": "true"}
        status, data = await self._get_json("nasa-apod", url, params)
        return ProxyResponse.from_json(status, data)

    async def nasa_epic(self) -> ProxyResponse:
        url = f"{self._settings.nasa_url.rstrip('/')}/EPIC/api/natural/images"
        params = {"api_key": self._nasa_key()}
        status, data = await self._get_json("nasa-epic", url, params)
        return ProxyResponse.from_json(status, data)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _nasa_key(self) -> str:
        key = self._settings.nasa_api_key.strip()
        if not key:
            raise ConfigurationError("Missing NASA_API_KEY", provider_name="nasa")
        return key

    async def _request(self, name: str, url: str, params: dict[str, Any]) -> httpx.Response:
        headers = {"User-Agent": self._settings.user_agent}
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            self._logger.warning("proxy_upstream_failed", provider=name, error=str(exc))
            raise GatewayError(message=f"{name} proxy failed: {exc}", provider_name=name) from exc
        self._logger.debug("proxy_upstream_response", provider=name, status=response.status_code)
        return response

    async def _passthrough(
        self,
        name: str,
        url: str,
        params: dict[str, Any],
        cache_control: str | None = None,
    ) -> ProxyResponse:
        response = await self._request(name, url, params)
        return ProxyResponse(
            status_code=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type") or JSON_CONTENT_TYPE,
            cache_control=cache_control,
        )

    async def _get_json(
        self,
        name: str,
        url: str,
        params: dict[str, Any],
    ) -> tuple[int, Any]:
        """Return the upstream status and decoded body; a non-JSON body is a ``GatewayError``."""
        response = await self._request(name, url, params)
        try:
            data = response.json()
        except ValueError as exc:
            self._logger.warning("proxy_upstream_not_json", provider=name, status=response.status_code)
            raise GatewayError(message=f"{name} returned a non-JSON body", provider_name=name) from exc
        return response.status_code, data
