"""ArcGIS World Geocoding Service provider.

A strong rural and global fallback, reached after the OSM and Census stages
come up empty.  Uses the keyless ``findAddressCandidates`` operation.
"""

from __future__ import annotations

import httpx
import structlog

from perceptacle.models.geocode import GeocodeQuery, GeocodeResult
from perceptacle.providers.geocoding.base import (
    DEFAULT_USER_AGENT,
    HttpGeocodingProvider,
    point_result,
    to_float,
)
from perceptacle.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)


class ArcGISProvider(HttpGeocodingProvider):
    """Single-line candidate search, restricted to ``USA`` for US-like queries."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://geocode.arcgis.com/arcgis/rest/services/World/GeocodeServer",
        user_agent: str = DEFAULT_USER_AGENT,
        max_locations: int = 5,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._max_locations = max_locations

    def get_provider_name(self) -> str:
        return "arcgis"

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        params = {
            "f": "json",
            "SingleLine": query.text,
            "outFields": "Match_addr,Addr_type",
            "maxLocations": self._max_locations,
        }
        if query.is_us:
            params["countryCode"] = "USA"

        data = await self._get_json(f"{self._base_url}/findAddressCandidates", params)
        # ArcGIS reports failures as HTTP 200 with an "error" member.
        if not isinstance(data, dict) or "error" in data:
            raise GeocodingError(
                message=f"Unusable response: {data.get('error') if isinstance(data, dict) else data!r}",
                provider_name=self.get_provider_name(),
            )

        results: list[GeocodeResult] = []
        for candidate in data.get("candidates") or []:
            if not isinstance(candidate, dict):
                continue
            location = candidate.get("location") or {}
            lat, lon = to_float(location.get("y")), to_float(location.get("x"))
            if lat is None or lon is None:
                continue
            name = (candidate.get("attributes") or {}).get("Match_addr") or query.text
            results.append(point_result(name, lat, lon))

        logger.debug("arcgis_search_complete", query=query.text, result_count=len(results))
        return results
