"""OpenCage geocoding provider, the last stage of the chain.

Only available when ``OPENCAGE_KEY`` is configured; the key is attached
server-side.  Decoded responses are cached through the injected cache
provider.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from perceptacle.interfaces.cache_provider import ICacheProvider
from perceptacle.models.geocode import BoundingBox, GeocodeQuery, GeocodeResult, LatLng
from perceptacle.providers.geocoding.base import (
    DEFAULT_USER_AGENT,
    HttpGeocodingProvider,
    point_result,
    to_float,
)
from perceptacle.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)

MAX_QUERY_LENGTH = 200


def parse_bounds(bounds: Any) -> BoundingBox | None:
    """Read OpenCage ``bounds`` in either corner or edge form."""
    if not isinstance(bounds, dict):
        return None
    if "northeast" in bounds and "southwest" in bounds:
        ne = bounds.get("northeast") or {}
        sw = bounds.get("southwest") or {}
        edges = (
            to_float(sw.get("lat")),
            to_float(sw.get("lng")),
            to_float(ne.get("lat")),
            to_float(ne.get("lng")),
        )
    else:
        edges = tuple(to_float(bounds.get(k)) for k in ("south", "west", "north", "east"))
    if None in edges:
        return None
    south, west, north, east = edges
    return BoundingBox(south=south, west=west, north=north, east=east)


class OpenCageProvider(HttpGeocodingProvider):
    """Keyed forward geocoding with a response cache.

    Parameters
    ----------
    api_key:
        OpenCage key; an empty key makes the stage unavailable.
    cache:
        Injected cache for decoded responses, keyed by query text and limit.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        cache: ICacheProvider | None = None,
        base_url: str = "https://api.opencagedata.com/geocode/v1/json",
        user_agent: str = DEFAULT_USER_AGENT,
        limit: int = 5,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._api_key = (api_key or "").strip()
        self._cache = cache
        self._limit = limit

    def get_provider_name(self) -> str:
        return "opencage"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        text = query.text[:MAX_QUERY_LENGTH]
        cache_key = json.dumps({"q": text, "limit": self._limit})

        data = await self._cache.get(cache_key) if self._cache else None
        if data is None:
            params = {"key": self._api_key, "q": text, "limit": self._limit}
            data = await self._get_json(self._base_url, params)
            if not isinstance(data, dict):
                raise GeocodingError(
                    message="Expected a JSON object",
                    provider_name=self.get_provider_name(),
                )
            if self._cache:
                await self._cache.set(cache_key, data)

        results: list[GeocodeResult] = []
        for item in data.get("results") or []:
            if not isinstance(item, dict):
                continue
            geometry = item.get("geometry") or {}
            lat, lon = to_float(geometry.get("lat")), to_float(geometry.get("lng"))
            if lat is None or lon is None:
                continue
            name = item.get("formatted") or text
            bbox = parse_bounds(item.get("bounds"))
            if bbox is None:
                results.append(point_result(name, lat, lon))
            else:
                results.append(GeocodeResult(name=name, center=LatLng(lat=lat, lon=lon), bbox=bbox))

        logger.debug("opencage_search_complete", query=text, result_count=len(results))
        return results
