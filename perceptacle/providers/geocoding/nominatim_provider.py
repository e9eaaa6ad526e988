"""Nominatim (OpenStreetMap) geocoding provider.

Used twice in the fallback chain: first bounded to the client's viewport,
then globally.  Both instances bias to the US with ``countrycodes=us`` when
the query looks like a US address.  Nominatim is also the reverse geocoder.

Response shape (``format=json``)::

    [{"lat": "36.05", "lon": "-94.18", "display_name": "...",
      "boundingbox": ["south", "north", "west", "east"]}, ...]
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from perceptacle.models.geocode import BoundingBox, GeocodeQuery, GeocodeResult, LatLng
from perceptacle.providers.geocoding.base import (
    DEFAULT_USER_AGENT,
    HttpGeocodingProvider,
    point_result,
    to_float,
)
from perceptacle.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)


class NominatimProvider(HttpGeocodingProvider):
    """Forward and reverse geocoding against a Nominatim instance.

    Parameters
    ----------
    bounded:
        When ``True`` the search is restricted to ``query.viewport``
        (``viewbox`` + ``bounded=1``) and the stage is skipped for queries
        sent without a viewport.
    limit:
        Maximum results per search.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = DEFAULT_USER_AGENT,
        bounded: bool = False,
        limit: int = 5,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._bounded = bounded
        self._limit = limit

    # -- IGeocodingProvider implementation -------------------------------------

    def get_provider_name(self) -> str:
        return "nominatim-bounded" if self._bounded else "nominatim"

    def accepts(self, query: GeocodeQuery) -> bool:
        return not self._bounded or query.viewport is not None

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        params: dict[str, Any] = {
            "q": query.text,
            "format": "json",
            "addressdetails": 1,
            "limit": self._limit,
        }
        if query.is_us:
            params["countrycodes"] = "us"
        if self._bounded and query.viewport is not None:
            params["viewbox"] = query.viewport.to_viewbox()
            params["bounded"] = 1

        data = await self._get_json(f"{self._base_url}/search", params)
        if not isinstance(data, list):
            raise GeocodingError(
                message="Expected a JSON array of places",
                provider_name=self.get_provider_name(),
            )

        results = [r for r in (self._parse_place(item) for item in data) if r is not None]
        logger.debug(
            "nominatim_search_complete",
            provider=self.get_provider_name(),
            query=query.text,
            result_count=len(results),
        )
        return results

    def supports_reverse(self) -> bool:
        return True

    async def reverse(self, lat: float, lon: float, zoom: int | None = None) -> list[GeocodeResult]:
        params = {
            "lat": lat,
            "lon": lon,
            "zoom": zoom if zoom is not None else 18,
            "format": "json",
            "addressdetails": 1,
        }
        data = await self._get_json(f"{self._base_url}/reverse", params)
        # An ocean or unmapped point comes back as {"error": "Unable to geocode"}.
        if not isinstance(data, dict) or "error" in data:
            return []
        result = self._parse_place(data)
        return [result] if result is not None else []

    # -- Helpers -----------------------------------------------------------------

    @staticmethod
    def _parse_place(item: Any) -> GeocodeResult | None:
        if not isinstance(item, dict):
            return None
        lat = to_float(item.get("lat"))
        lon = to_float(item.get("lon"))
        if lat is None or lon is None:
            return None
        name = item.get("display_name") or ""

        box = item.get("boundingbox")
        if isinstance(box, list) and len(box) == 4:
            south, north, west, east = (to_float(v) for v in box)
            if None not in (south, north, west, east):
                return GeocodeResult(
                    name=name,
                    center=LatLng(lat=lat, lon=lon),
                    bbox=BoundingBox(south=south, west=west, north=north, east=east),
                )
        return point_result(name, lat, lon)
