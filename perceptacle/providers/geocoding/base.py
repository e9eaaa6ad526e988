"""Shared HTTP plumbing for the geocoding adapters.

Every adapter issues JSON GET requests through one injected
``httpx.AsyncClient`` and maps transport and protocol failures onto the
project's error hierarchy:

    httpx.HTTPError during the request  →  ProviderUnavailableError
    non-2xx status                      →  GeocodingError
    body that is not JSON               →  GeocodingError

The orchestrator treats both as "this stage failed, try the next one".
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from perceptacle.interfaces.geocoding_provider import IGeocodingProvider
from perceptacle.models.geocode import BoundingBox, GeocodeResult, LatLng
from perceptacle.utils.errors import GeocodingError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_USER_AGENT = "ElectricGavinoe/1.0 (+local)"


def to_float(value: Any) -> float | None:
    """Coerce a JSON number or numeric string to float; ``None`` when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def point_result(name: str, lat: float, lon: float) -> GeocodeResult:
    """Build a result whose bounding box collapses to its centre point."""
    return GeocodeResult(
        name=name,
        center=LatLng(lat=lat, lon=lon),
        bbox=BoundingBox.from_point(lat, lon),
    )


class HttpGeocodingProvider(IGeocodingProvider):
    """Base class for adapters that talk to a JSON-over-HTTP geocoder.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``, injected for connection pooling and so
        tests can replace ``get`` with an ``AsyncMock``.
    base_url:
        Upstream endpoint root, from :class:`~perceptacle.config.Settings`.
    user_agent:
        Sent on every request; Nominatim's usage policy requires one.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    def is_available(self) -> bool:
        return True

    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        """GET *url* and return the decoded JSON body."""
        headers = {"User-Agent": self._user_agent, "Accept": "application/json"}
        provider = self.get_provider_name()
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                message=f"Request failed: {exc}",
                provider_name=provider,
            ) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GeocodingError(
                message=f"HTTP {exc.response.status_code}",
                provider_name=provider,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise GeocodingError(
                message="Response body is not valid JSON",
                provider_name=provider,
            ) from exc

        logger.debug("geocoder_response", provider=provider, url=url)
        return data
