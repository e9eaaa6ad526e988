"""Nearby Wikipedia articles via the MediaWiki geosearch generator.

One request fetches up to ``limit`` pages within the radius together with
their coordinates, intro extract, thumbnail and URL.  Rows are sorted by
great-circle distance from the query point (pages without coordinates
last) and cached for ten minutes.
"""

from __future__ import annotations

import math
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from perceptacle.interfaces.cache_provider import ICacheProvider
from perceptacle.utils.errors import GatewayError, InvalidInputError
from perceptacle.utils.logging import get_logger

EARTH_RADIUS_KM = 6371.0
MAX_RADIUS_M = 10_000  # geosearch hard limit


class WikipediaPlace(BaseModel):
    """A Wikipedia article with a location near the query point."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pageid: int | None = None
    title: str = ""
    extract: str = ""
    lat: float | None = None
    lon: float | None = None
    dist_km: float | None = Field(default=None, alias="distKm")
    thumb: str | None = None
    url: str = ""


def haversine_km(a_lat: float, a_lon: float, b_lat: float, b_lon: float) -> float:
    """Great-circle distance between two WGS84 points, in kilometres."""
    d_lat = math.radians(b_lat - a_lat)
    d_lon = math.radians(b_lon - a_lon)
    s = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a_lat)) * math.cos(math.radians(b_lat)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(s))


def _to_number(raw: Any) -> float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class WikipediaNearbyService:
    """Geosearch wrapper with clamping, distance sorting and caching."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: ICacheProvider,
        api_url: str = "https://en.wikipedia.org/w/api.php",
        user_agent: str = "ElectricGavinoe/1.0 (+local)",
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._api_url = api_url
        self._user_agent = user_agent
        self._logger = get_logger(__name__)

    async def nearby(
        self,
        lat: Any,
        lon: Any,
        km: Any = None,
        limit: Any = None,
    ) -> list[WikipediaPlace]:
        """Articles within *km* of (*lat*, *lon*), nearest first.

        *km* is clamped to 1..100 (default 8) and *limit* to 1..50
        (default 20).  The geosearch radius itself never exceeds 10 km.
        """
        lat_f, lon_f = _to_number(lat), _to_number(lon)
        if lat_f is None or lon_f is None:
            raise InvalidInputError("Invalid coordinates")

        km_f = min(max(_to_number(km) or 8.0, 1.0), 100.0)
        try:
            limit_i = int(limit) if limit is not None else 20
        except (TypeError, ValueError):
            limit_i = 20
        limit_i = min(max(limit_i or 20, 1), 50)

        cache_key = f"{lat_f:.3f}:{lon_f:.3f}:{km_f:g}:{limit_i}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        params = {
            "format": "json",
            "action": "query",
            "generator": "geosearch",
            "ggscoord": f"{lat_f}|{lon_f}",
            "ggsradius": str(min(round(km_f * 1000), MAX_RADIUS_M)),
            "ggslimit": str(limit_i),
            "prop": "coordinates|pageimages|extracts|info",
            "coprop": "type|name|dim|country|region|globe|primary",
            "colimit": "max",
            "exintro": "1",
            "explaintext": "1",
            "exlimit": "max",
            "piprop": "thumbnail",
            "pithumbsize": "320",
            "inprop": "url",
        }
        try:
            response = await self._http.get(
                self._api_url, params=params, headers={"User-Agent": self._user_agent}
            )
            data = response.json()
        except httpx.HTTPError as exc:
            raise GatewayError(f"Wikipedia request failed: {exc}", provider_name="wikipedia") from exc
        except ValueError as exc:
            raise GatewayError("Wikipedia returned a non-JSON body", provider_name="wikipedia") from exc

        if not isinstance(data, dict):
            raise GatewayError("Wikipedia returned an unexpected body", provider_name="wikipedia")
        if data.get("error"):
            error = data["error"]
            detail = error.get("info") or error.get("code") if isinstance(error, dict) else error
            self._logger.warning("wikipedia_api_error", detail=str(detail))
            raise GatewayError(f"Wikipedia error: {detail}", provider_name="wikipedia")

        pages = (data.get("query") or {}).get("pages") or {}
        rows = [self._to_place(page, lat_f, lon_f) for page in pages.values() if isinstance(page, dict)]
        rows.sort(key=lambda p: p.dist_km if p.dist_km is not None else math.inf)
        rows = rows[:limit_i]

        await self._cache.set(cache_key, rows)
        self._logger.info("wikipedia_nearby", lat=lat_f, lon=lon_f, km=km_f, result_count=len(rows))
        return rows

    @staticmethod
    def _to_place(page: dict[str, Any], lat: float, lon: float) -> WikipediaPlace:
        coords = page.get("coordinates") or []
        coord = coords[0] if coords and isinstance(coords[0], dict) else {}
        p_lat, p_lon = _to_number(coord.get("lat")), _to_number(coord.get("lon"))
        dist = None
        if p_lat is not None and p_lon is not None:
            dist = round(haversine_km(lat, lon, p_lat, p_lon) * 10) / 10
        pageid = page.get("pageid")
        return WikipediaPlace(
            pageid=pageid,
            title=page.get("title") or "",
            extract=page.get("extract") or "",
            lat=p_lat,
            lon=p_lon,
            dist_km=dist,
            thumb=(page.get("thumbnail") or {}).get("source"),
            url=page.get("fullurl") or page.get("canonicalurl") or f"https://en.wikipedia.org/?curid={pageid}",
        )
