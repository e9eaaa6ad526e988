"""User-created point markers.

Markers are stored as an insertion-ordered list in ``markers.json``.  Older
documents have no ``id``; new markers get a UUID so clients can stop
addressing them by position, which shifts whenever an earlier marker is
deleted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from perceptacle.models.tip import now_ms


class MarkerCategory(str, Enum):
    """Marker categories understood by the map client."""

    PLANT = "plant"
    HISTORY = "history"
    MISC = "misc"

    @classmethod
    def normalize(cls, raw: Any) -> MarkerCategory:
        """Map free-form input onto a category, defaulting to ``MISC``."""
        if isinstance(raw, cls):
            return raw
        key = str(raw or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.MISC


class Marker(BaseModel):
    """A point of interest placed by a user."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = Field(default_factory=lambda: str(uuid4()))
    # Coordinates may be missing on markers written by older clients.
    lat: float | None = None
    lon: float | None = None
    title: str
    description: str | None = None
    category: MarkerCategory = MarkerCategory.MISC
    user_id: str | None = Field(default=None, alias="userId")
    timestamp: int = Field(default_factory=now_ms)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> MarkerCategory:
        return MarkerCategory.normalize(value)

    def to_document(self) -> dict[str, Any]:
        """Serialize with camelCase keys, as stored in ``markers.json``."""
        return self.model_dump(mode="json", by_alias=True)
