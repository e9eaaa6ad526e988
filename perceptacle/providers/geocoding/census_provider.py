"""US Census Bureau geocoding providers.

The Census geocoder has excellent rural coverage and needs no key, but only
knows US addresses, so both stages decline non-US queries.

* :class:`CensusOneLineProvider` submits the normalized one-line string to
  ``/locations/onelineaddress``.
* :class:`CensusAddressProvider` splits the address into street / city /
  state / ZIP and tries several combinations against ``/locations/address``,
  optionally filling in a ZIP from a small city→ZIP hint table.  It runs once
  per benchmark (``Public_AR_Current`` then ``Public_AR_Census2020``).

Both return ``{"result": {"addressMatches": [{"coordinates": {"x": lon, "y": lat},
"matchedAddress": "..."}]}}``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from perceptacle.models.geocode import GeocodeQuery, GeocodeResult
from perceptacle.providers.geocoding.base import (
    DEFAULT_USER_AGENT,
    HttpGeocodingProvider,
    point_result,
    to_float,
)
from perceptacle.services.geo_query import USAddressParts, split_us_address
from perceptacle.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)

BENCHMARK_CURRENT = "Public_AR_Current"
BENCHMARK_CENSUS2020 = "Public_AR_Census2020"

DEFAULT_ZIP_HINTS: dict[str, list[str]] = {
    "WEST FORK,AR": ["72774"],
    "GREENLAND,AR": ["72737"],
    "WINSLOW,AR": ["72959"],
}


def parse_address_matches(data: Any, fallback_name: str) -> list[GeocodeResult]:
    """Map a Census ``addressMatches`` payload onto point results."""
    result = data.get("result") if isinstance(data, dict) else None
    matches = result.get("addressMatches") if isinstance(result, dict) else None
    if not isinstance(matches, list):
        return []

    results: list[GeocodeResult] = []
    for match in matches:
        if not isinstance(match, dict):
            continue
        coords = match.get("coordinates") or {}
        lat, lon = to_float(coords.get("y")), to_float(coords.get("x"))
        if lat is None or lon is None:
            continue
        results.append(point_result(match.get("matchedAddress") or fallback_name, lat, lon))
    return results


def address_candidates(
    parts: USAddressParts,
    zip_hints: dict[str, list[str]] | None = None,
) -> list[USAddressParts]:
    """Return the structured combinations to try, in order, without duplicates.

    1. The address as parsed.
    2. With no parsed ZIP: each hinted ZIP for ``CITY,ST`` with the city,
       then each hinted ZIP without the city.
    3. With a parsed ZIP: the same ZIP without the city.

    Returns an empty list when no street was parsed.
    """
    if not parts.street:
        return []

    hints = zip_hints if zip_hints is not None else DEFAULT_ZIP_HINTS
    hint_key = f"{parts.city.upper()},{parts.state.upper()}" if parts.city and parts.state else ""
    hinted = hints.get(hint_key, []) if hint_key else []

    combos = [parts]
    if not parts.zip and hinted:
        combos.extend(parts._replace(zip=z) for z in hinted)
        combos.extend(parts._replace(city="", zip=z) for z in hinted)
    if parts.zip and parts.state:
        combos.append(parts._replace(city=""))

    unique: list[USAddressParts] = []
    for combo in combos:
        if combo not in unique:
            unique.append(combo)
    return unique


class CensusOneLineProvider(HttpGeocodingProvider):
    """One-line address lookup against a single Census benchmark."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://geocoding.geo.census.gov/geocoder",
        user_agent: str = DEFAULT_USER_AGENT,
        benchmark: str = BENCHMARK_CURRENT,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._benchmark = benchmark

    def get_provider_name(self) -> str:
        return f"census-oneline:{self._benchmark}"

    def accepts(self, query: GeocodeQuery) -> bool:
        return query.is_us

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        params = {"address": query.text, "benchmark": self._benchmark, "format": "json"}
        data = await self._get_json(f"{self._base_url}/locations/onelineaddress", params)
        if not isinstance(data, dict):
            raise GeocodingError(
                message="Expected a JSON object",
                provider_name=self.get_provider_name(),
            )
        return parse_address_matches(data, query.text)


class CensusAddressProvider(HttpGeocodingProvider):
    """Structured street / city / state / ZIP lookup with ZIP hints.

    The address is split from ``query.raw`` so the user's commas still
    separate street from city; the normalized text has them collapsed.
    A combination whose response is not JSON counts as "no match" and the
    next combination is tried; network errors fail the whole stage.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://geocoding.geo.census.gov/geocoder",
        user_agent: str = DEFAULT_USER_AGENT,
        benchmark: str = BENCHMARK_CURRENT,
        zip_hints: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(http_client, base_url, user_agent)
        self._benchmark = benchmark
        self._zip_hints = {
            key.upper(): list(zips)
            for key, zips in (zip_hints if zip_hints is not None else DEFAULT_ZIP_HINTS).items()
        }

    def get_provider_name(self) -> str:
        return f"census-address:{self._benchmark}"

    def accepts(self, query: GeocodeQuery) -> bool:
        return query.is_us

    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        parts = split_us_address(query.raw or query.text)
        for combo in address_candidates(parts, self._zip_hints):
            params: dict[str, Any] = {"street": combo.street}
            if combo.city:
                params["city"] = combo.city
            if combo.state:
                params["state"] = combo.state
            if combo.zip:
                params["zip"] = combo.zip
            params["benchmark"] = self._benchmark
            params["format"] = "json"

            try:
                data = await self._get_json(f"{self._base_url}/locations/address", params)
            except GeocodingError as exc:
                logger.debug(
                    "census_address_combo_failed",
                    benchmark=self._benchmark,
                    combo=combo._asdict(),
                    error=str(exc),
                )
                continue

            fallback = ", ".join(p for p in (combo.street, combo.city, combo.state, combo.zip) if p)
            results = parse_address_matches(data, fallback)
            if results:
                logger.debug(
                    "census_address_matched",
                    benchmark=self._benchmark,
                    combo=combo._asdict(),
                    result_count=len(results),
                )
                return results
        return []
