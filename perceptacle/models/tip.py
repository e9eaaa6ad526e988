"""Tip (annotation) domain models.

Tips are short user notes pinned to a location.  They are grouped under a
*target key* (``usgs:<siteId>`` or ``custom:<markerIndex>``) and persisted as
``{key: [tip, ...]}``.  Field aliases keep the persisted document and the
wire format camelCase (``userId``, ``photoUrl``) so existing ``tips.json``
files load unchanged.

Key design decisions:
  - **id is preferred.**  A positional index within a group is a legacy
    input, used only when no id is sent or the id matches nothing.
  - **Immutable state.**  Updates and publishing go through
    ``model_copy(update={...})``; the service writes the copy back.
  - **One-way status.**  ``DRAFT → PUBLISHED`` is the only transition.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds (the persisted timestamp unit)."""
    return int(time.time() * 1000)


class TipStatus(str, Enum):
    """Visibility state of a tip."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Tip(BaseModel):
    """A single annotation attached to a target key."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    text: str
    timestamp: int = Field(default_factory=now_ms)
    user_id: str | None = Field(default=None, alias="userId")
    photo_url: str | None = Field(default=None, alias="photoUrl")
    # None only for documents stored before tips had a status; such tips are
    # visible to nobody until published.
    status: TipStatus | None = TipStatus.PUBLISHED

    @property
    def is_draft(self) -> bool:
        return self.status is TipStatus.DRAFT

    def to_document(self) -> dict[str, Any]:
        """Serialize with camelCase keys, as stored in ``tips.json``."""
        return self.model_dump(mode="json", by_alias=True)


class TipTarget(BaseModel):
    """The heterogeneous ways a caller can name which location a tip belongs to.

    Exactly one of the fields is normally set; see
    :func:`perceptacle.services.tip_keys.resolve_key` for the precedence.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str | None = None
    site_id: str | None = Field(default=None, alias="siteId")
    marker_index: int | None = Field(default=None, alias="markerIndex")

    @field_validator("site_id", mode="before")
    @classmethod
    def _coerce_site_id(cls, value: Any) -> Any:
        # USGS ids are digit strings but clients sometimes send them as numbers.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
