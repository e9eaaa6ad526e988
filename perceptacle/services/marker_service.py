"""Marker service: CRUD over the user-created point markers.

Markers are an insertion-ordered list in the ``markers`` collection.  New
markers get an ``id``; documents written before ids existed keep
``id: null`` and can only be addressed by position.  A position is valid
only until an earlier marker is deleted, which is why ids are preferred.

Positions count listed markers only.  A stored entry that cannot be read as
a marker is left in place but skipped by both the listing and positional
addressing, so index N always means the Nth marker a client was shown.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from perceptacle.interfaces.collection_store import ICollectionStore
from perceptacle.models.marker import Marker
from perceptacle.models.tip import now_ms
from perceptacle.services.positions import require_position
from perceptacle.utils.errors import InvalidInputError
from perceptacle.utils.logging import get_logger

MARKERS_COLLECTION = "markers"


class MarkerService:
    """List, create, update and delete markers."""

    def __init__(self, store: ICollectionStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    async def list_markers(self) -> list[Marker]:
        """All markers in stored order; unreadable entries are skipped."""
        _, listed = await self._read_listed()
        return [marker for _, marker in listed]

    async def create_marker(
        self,
        lat: float | None,
        lon: float | None,
        title: str | None,
        description: str | None = None,
        category: str | None = None,
        user_id: str | None = None,
    ) -> Marker:
        """Append a marker; ``lat``, ``lon`` and ``title`` are required."""
        if lat is None or lon is None or not title:
            raise InvalidInputError("Missing fields")

        marker = self._build(
            lat=lat,
            lon=lon,
            title=title,
            description=description,
            category=category,
            user_id=user_id or None,
        )
        markers = await self._read_all()
        markers.append(marker.to_document())
        await self._store.write_collection(MARKERS_COLLECTION, markers)
        self._logger.info("marker_created", marker_id=marker.id, category=marker.category.value)
        return marker

    async def update_marker(
        self,
        marker_id: str | None = None,
        index: int | None = None,
        lat: float | None = None,
        lon: float | None = None,
        title: str | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> Marker:
        """Replace a marker's location, text and category.

        ``id`` and ``userId`` are kept; a missing ``lat`` or ``lon`` keeps the
        stored coordinate.
        """
        if (not marker_id and index is None) or not title:
            raise InvalidInputError("Missing index/title")

        markers, listed = await self._read_listed()
        position, current = self._locate(listed, marker_id, index)

        updated = self._build(
            id=current.id,
            lat=current.lat if lat is None else lat,
            lon=current.lon if lon is None else lon,
            title=title,
            description=description,
            category=category,
            user_id=current.user_id,
            timestamp=now_ms(),
        )
        markers[position] = updated.to_document()
        await self._store.write_collection(MARKERS_COLLECTION, markers)
        self._logger.info("marker_updated", marker_id=updated.id, position=position)
        return updated

    async def delete_marker(self, marker_id: str | None = None, index: int | None = None) -> None:
        """Remove a marker by id or position."""
        if not marker_id and index is None:
            raise InvalidInputError("Missing index")

        markers, listed = await self._read_listed()
        position, _ = self._locate(listed, marker_id, index)
        markers.pop(position)
        await self._store.write_collection(MARKERS_COLLECTION, markers)
        self._logger.info("marker_deleted", marker_id=marker_id, position=position)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _read_all(self) -> list[Any]:
        data = await self._store.read_collection(MARKERS_COLLECTION)
        if not isinstance(data, list):
            self._logger.warning("marker_store_not_a_list", found=type(data).__name__)
            return []
        return data

    async def _read_listed(self) -> tuple[list[Any], list[tuple[int, Marker]]]:
        """Return the stored list and its readable markers with their storage positions."""
        markers = await self._read_all()
        listed: list[tuple[int, Marker]] = []
        for position, doc in enumerate(markers):
            marker = self._parse(doc)
            if marker is not None:
                listed.append((position, marker))
        return markers, listed

    @staticmethod
    def _locate(
        listed: list[tuple[int, Marker]],
        marker_id: str | None,
        index: int | None,
    ) -> tuple[int, Marker]:
        slot = require_position([marker for _, marker in listed], id=marker_id, index=index, label="Marker")
        return listed[slot]

    @staticmethod
    def _build(**fields: Any) -> Marker:
        try:
            return Marker(**fields)
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid marker: {exc.errors()[0].get('msg', 'bad value')}") from exc

    def _parse(self, doc: Any) -> Marker | None:
        if not isinstance(doc, dict):
            return None
        try:
            # Keep a missing id as None instead of minting a new one per read.
            return Marker.model_validate({**doc, "id": doc.get("id")})
        except ValidationError as exc:
            self._logger.warning("marker_document_invalid", error=str(exc))
            return None
