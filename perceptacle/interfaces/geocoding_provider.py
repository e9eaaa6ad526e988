"""Abstract base class for geocoding providers.

Each instance is one *stage* of the search fallback chain.  The same backend
can appear twice with different settings (bounded and unbounded Nominatim,
Census structured lookups against two benchmarks), so configuration lives on
the instance and the orchestrator simply walks an ordered list.

Concrete implementations live in ``perceptacle/providers/geocoding/``:
NominatimProvider, PhotonProvider, CensusOneLineProvider,
CensusAddressProvider, ArcGISProvider, OpenCageProvider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from perceptacle.models.geocode import GeocodeQuery, GeocodeResult


class IGeocodingProvider(ABC):
    """Contract for a forward geocoder, with optional suggest and reverse.

    Forward geocoding is mandatory.  Autocomplete suggestions and reverse
    lookups are optional and declared via :meth:`supports_suggest` and
    :meth:`supports_reverse`.
    """

    @abstractmethod
    async def geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        """Look up *query* and return zero or more places.

        Parameters
        ----------
        query:
            The classified query; adapters read ``query.text`` and, where
            relevant, ``query.is_us`` and ``query.viewport``.

        Returns
        -------
        list[GeocodeResult]
            Results in the provider's own order.  Empty means "no match".

        Raises
        ------
        perceptacle.utils.errors.GeocodingError
            On a non-success status or a malformed body.
        perceptacle.utils.errors.ProviderUnavailableError
            When the upstream cannot be reached.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier for logs, e.g. ``"nominatim-bounded"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (API key present, etc.)."""

    def accepts(self, query: GeocodeQuery) -> bool:
        """Return ``True`` if this stage should run for *query*.

        US-only stages return ``False`` for international queries; a
        viewport-bounded stage returns ``False`` when no viewport was sent.
        A stage that does not accept a query is skipped, not failed.
        """
        return True

    def supports_suggest(self) -> bool:
        """Return ``True`` if :meth:`suggest` is implemented."""
        return False

    async def suggest(self, query: GeocodeQuery) -> list[GeocodeResult]:
        """Return autocomplete candidates for a partial *query*."""
        raise NotImplementedError(f"{self.get_provider_name()} does not support suggestions")

    def supports_reverse(self) -> bool:
        """Return ``True`` if :meth:`reverse` is implemented."""
        return False

    async def reverse(self, lat: float, lon: float, zoom: int | None = None) -> list[GeocodeResult]:
        """Return places at or near a coordinate."""
        raise NotImplementedError(f"{self.get_provider_name()} does not support reverse geocoding")
