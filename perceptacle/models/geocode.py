"""Geocoding value objects shared by the classifier, adapters and orchestrator.

All models are frozen Pydantic v2 models: a result produced by one adapter is
handed unchanged to the API layer, so nothing downstream may mutate it.

    raw text ──classify()──▶ GeocodeQuery ──adapter──▶ list[GeocodeResult]
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LatLng(BaseModel):
    """A WGS84 coordinate pair."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class BoundingBox(BaseModel):
    """An axis-aligned lat/lon box (south/west corner to north/east corner)."""

    model_config = ConfigDict(frozen=True)

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_point(cls, lat: float, lon: float) -> BoundingBox:
        """Return a zero-area box around a single point.

        Census and ArcGIS only return a point per match; the client still
        expects a box to fit the map to.
        """
        return cls(south=lat, west=lon, north=lat, east=lon)

    def to_viewbox(self) -> str:
        """Render as Nominatim's ``viewbox`` parameter (``west,south,east,north``)."""
        return f"{self.west},{self.south},{self.east},{self.north}"


class GeocodeResult(BaseModel):
    """One place returned by a geocoding provider.

    No identity beyond its fields: two results with equal fields are the
    same result.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    center: LatLng
    bbox: BoundingBox


class GeocodeQuery(BaseModel):
    """A classified, normalized search request.

    Built once by :func:`perceptacle.services.geo_query.classify` and passed
    to every stage of the fallback chain so each adapter sees the same text.
    """

    model_config = ConfigDict(frozen=True)

    raw: str = Field(description="The text exactly as the user typed it.")
    text: str = Field(description="US or international normalization of ``raw``.")
    is_us: bool = False
    viewport: BoundingBox | None = Field(
        default=None,
        description="Current map view; only the bounded Nominatim stage uses it.",
    )
