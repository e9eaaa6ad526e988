"""Geocoding orchestration with a multi-provider fallback chain.

Holds an ordered list of geocoding stages and tries each in turn until one
returns at least one place.  The default order (assembled in ``main.py``) is:

    bounded Nominatim → Nominatim → Photon → Census one-line (US)
    → Census structured, current benchmark (US)
    → Census structured, 2020 benchmark (US) → ArcGIS → OpenCage (keyed)

Architecture: Fallback Chain Pattern
-------------------------------------
Each stage is an :class:`IGeocodingProvider` instance.  A stage is *skipped*
when it reports itself unavailable (no API key) or declines the query (US-only
stage, bounded stage without a viewport).  A stage *fails* when it raises;
the failure is logged and the chain moves on.  The first non-empty result
list is returned whole: results are never merged across stages or re-ranked.

Search never raises.  When every stage is skipped, empty or failing, the
caller gets ``[]``.
"""

from __future__ import annotations

from perceptacle.interfaces.geocoding_provider import IGeocodingProvider
from perceptacle.models.geocode import BoundingBox, GeocodeResult
from perceptacle.services.geo_query import classify
from perceptacle.utils.logging import get_logger


class GeocodeOrchestrator:
    """Runs forward, suggest and reverse lookups across geocoding stages.

    Stages run sequentially, never in parallel, so at most one upstream
    request is in flight per search.
    """

    def __init__(self, providers: list[IGeocodingProvider]) -> None:
        # Order matters; the caller controls it.
        self._providers = providers
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def geocode(self, query: str, viewport: BoundingBox | None = None) -> list[GeocodeResult]:
        """Resolve *query* to places using the first stage that finds any.

        Parameters
        ----------
        query:
            Free-form text as typed by the user.
        viewport:
            The client's current map bounds, used by the bounded stage.

        Returns
        -------
        list[GeocodeResult]
            The first non-empty stage result, or ``[]``.
        """
        if not (query or "").strip():
            return []

        classified = classify(query, viewport)
        self._logger.info(
            "geocode_started",
            query=classified.text,
            is_us=classified.is_us,
            bounded=viewport is not None,
        )

        for stage in self._providers:
            name = stage.get_provider_name()

            if not stage.is_available():
                self._logger.debug("geocode_stage_unavailable", provider=name)
                continue
            if not stage.accepts(classified):
                self._logger.debug("geocode_stage_skipped", provider=name)
                continue

            try:
                results = await stage.geocode(classified)
            except Exception as exc:
                # A failing stage is non-fatal; the next one gets its turn.
                self._logger.warning(
                    "geocode_stage_failed",
                    provider=name,
                    query=classified.text,
                    error=str(exc),
                )
                continue

            if results:
                self._logger.info(
                    "geocode_stage_matched",
                    provider=name,
                    result_count=len(results),
                )
                return results

            self._logger.debug("geocode_stage_empty", provider=name)

        self._logger.info("geocode_no_match", query=classified.text)
        return []

    async def suggest(self, query: str) -> list[GeocodeResult]:
        """Autocomplete candidates from the first stage that supports them.

        There is no fallback: if that stage is missing or fails, the answer
        is ``[]``.
        """
        if not (query or "").strip():
            return []

        provider = next((p for p in self._providers if p.supports_suggest()), None)
        if provider is None or not provider.is_available():
            return []

        try:
            return await provider.suggest(classify(query))
        except Exception as exc:
            self._logger.warning(
                "geocode_suggest_failed",
                provider=provider.get_provider_name(),
                error=str(exc),
            )
            return []

    async def reverse(self, lat: float, lon: float, zoom: int | None = None) -> list[GeocodeResult]:
        """Places at a coordinate, from the first stage that reverse-geocodes."""
        provider = next(
            (p for p in self._providers if p.supports_reverse() and p.is_available()),
            None,
        )
        if provider is None:
            return []

        try:
            return await provider.reverse(lat, lon, zoom)
        except Exception as exc:
            self._logger.warning(
                "geocode_reverse_failed",
                provider=provider.get_provider_name(),
                lat=lat,
                lon=lon,
                error=str(exc),
            )
            return []

    def get_available_providers(self) -> list[str]:
        """Return the names of stages that are currently available."""
        return [p.get_provider_name() for p in self._providers if p.is_available()]
