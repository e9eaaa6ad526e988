"""Perceptacle domain models (frozen Pydantic v2)."""

from perceptacle.models.geocode import BoundingBox, GeocodeQuery, GeocodeResult, LatLng
from perceptacle.models.marker import Marker, MarkerCategory
from perceptacle.models.tip import Tip, TipStatus, TipTarget

__all__ = [
    "BoundingBox",
    "GeocodeQuery",
    "GeocodeResult",
    "LatLng",
    "Marker",
    "MarkerCategory",
    "Tip",
    "TipStatus",
    "TipTarget",
]
