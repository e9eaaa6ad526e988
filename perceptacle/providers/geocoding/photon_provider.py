"""Photon (Komoot) geocoding provider.

Photon is OSM-based with good house-number interpolation.  It is the third
stage of the search chain and the only source of autocomplete suggestions;
it also serves as the reverse geocoder when Nominatim is not configured.

Responses are GeoJSON FeatureCollections::

    {"features": [{"geometry": {"coordinates": [lon, lat]},
                   "properties": {"name": ..., "street": ..., "housenumber": ...,
                                  "city": ..., "state": ..., "postcode": ...,
                                  "country": ..., "extent": [west, north, east, south]}}]}
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


class PhotonProvider(HttpGeocodingProvider):
    """Search, suggest and reverse geocoding against a Photon instance."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://photon.komoot.io",
        user_agent: str = DEFAULT_USER_AGENT,
        lang: str = "en",
        limit: int = 8,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._lang = lang
        self._limit = limit

    # -- IGeocodingProvider implementation -------------------------------------

    def get_provider_name(self) -> str:
        return "photon"

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        params = {"q": query.text, "lang": self._lang, "limit": self._limit}
        data = await self._get_json(f"{self._base_url}/api/", params)
        results = self._parse_features(data)
        logger.debug("photon_search_complete", query=query.text, result_count=len(results))
        return results

    def supports_suggest(self) -> bool:
        return True

    async def suggest(self, query: GeocodeQuery) -> list[GeocodeResult]:
        # Photon is a search-as-you-type engine; suggestions are plain searches.
        return await self.geocode(query)

    def supports_reverse(self) -> bool:
        return True

    async def reverse(self, lat: float, lon: float, zoom: int | None = None) -> list[GeocodeResult]:
        params = {"lat": lat, "lon": lon, "lang": self._lang}
        data = await self._get_json(f"{self._base_url}/reverse", params)
        return self._parse_features(data)

    # -- Helpers -----------------------------------------------------------------

    def _parse_features(self, data: Any) -> list[GeocodeResult]:
        if not isinstance(data, dict) or not isinstance(data.get("features"), list):
            raise GeocodingError(
                message="Expected a GeoJSON FeatureCollection",
                provider_name=self.get_provider_name(),
            )
        results: list[GeocodeResult] = []
        for feature in data["features"]:
            result = self._parse_feature(feature)
            if result is not None:
                results.append(result)
        return results

    @classmethod
    def _parse_feature(cls, feature: Any) -> GeocodeResult | None:
        if not isinstance(feature, dict):
            return None
        coords = (feature.get("geometry") or {}).get("coordinates")
        if not isinstance(coords, list) or len(coords) < 2:
            return None
        lon, lat = to_float(coords[0]), to_float(coords[1])
        if lat is None or lon is None:
            return None

        props = feature.get("properties") or {}
        name = cls._display_name(props)

        extent = props.get("extent")
        if isinstance(extent, list) and len(extent) == 4:
            west, north, east, south = (to_float(v) for v in extent)
            if None not in (west, north, east, south):
                return GeocodeResult(
                    name=name,
                    center=LatLng(lat=lat, lon=lon),
                    bbox=BoundingBox(south=south, west=west, north=north, east=east),
                )
        return point_result(name, lat, lon)

    @staticmethod
    def _display_name(props: dict[str, Any]) -> str:
        """Join the populated address properties, e.g. ``"12 Main St, Springfield, IL"``."""
        street = " ".join(
            str(part) for part in (props.get("housenumber"), props.get("street")) if part
        )
        parts: list[str] = []
        for part in (
            props.get("name"),
            street,
            props.get("city"),
            props.get("state"),
            props.get("postcode"),
            props.get("country"),
        ):
            if part and str(part) not in parts:
                parts.append(str(part))
        return ", ".join(parts)
