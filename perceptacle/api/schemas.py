"""Pydantic request/response schemas for the Perceptacle API.

The wire format is camelCase (``siteId``, ``markerIndex``, ``userId``,
``photoUrl``) to match the browser client and the persisted documents.
Fields are declared in snake_case with aliases; ``populate_by_name`` lets
tests and internal callers use either spelling.

Request bodies are deliberately permissive: missing targets and fields are
rejected by the services with a 400 and a readable message rather than by
FastAPI's 422 validation error.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from perceptacle.models.tip import TipTarget

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``error`` is the human-readable message (e.g. ``"Not your draft"``);
    ``detail`` names the error kind.
    """

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Liveness probe response."""

    ok: bool = True


class ConfigResponse(BaseModel):
    """Which optional, key-gated features the server can offer."""

    model_config = ConfigDict(populate_by_name=True)

    opencage_enabled: bool = Field(alias="opencageEnabled")
    has_nasa: bool = Field(alias="hasNasa")


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


class MarkerRequest(BaseModel):
    """Body for POST/PUT/DELETE ``/api/markers``.

    PUT and DELETE address a marker by ``id`` or, for older clients, by
    ``index``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    index: int | None = None
    lat: float | None = None
    lon: float | None = None
    title: str | None = None
    description: str | None = None
    category: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


# ---------------------------------------------------------------------------
# Tips
# ---------------------------------------------------------------------------


class TipTargetRequest(TipTarget):
    """Base for tip bodies: the ``key`` / ``siteId`` / ``markerIndex`` target."""

    def target(self) -> TipTarget:
        return TipTarget(key=self.key, site_id=self.site_id, marker_index=self.marker_index)


class CreateTipRequest(TipTargetRequest):
    """Body for POST ``/api/tips``."""

    text: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    photo_url: str | None = Field(default=None, alias="photoUrl")
    status: str | None = Field(default=None, description='"draft" creates a draft; anything else publishes.')


class UpdateTipRequest(TipTargetRequest):
    """Body for PUT ``/api/tips``.

    Sending ``photoUrl: null`` clears the photo; omitting it keeps the photo.
    """

    id: str | None = None
    index: int | None = None
    text: str | None = None
    photo_url: str | None = Field(default=None, alias="photoUrl")


class PublishTipRequest(TipTargetRequest):
    """Body for PUT ``/api/tips/publish``."""

    id: str | None = None
    index: int | None = None
    user_id: str | None = Field(default=None, alias="userId")


class DeleteTipRequest(TipTargetRequest):
    """Body for DELETE ``/api/tips``."""

    id: str | None = None
    index: int | None = None


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


class PhotoUploadResponse(BaseModel):
    """Public URL of a stored tip photo."""

    url: str
