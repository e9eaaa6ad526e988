"""Unit tests for MarkerService CRUD and the Marker model."""

from __future__ import annotations

import pytest

from perceptacle.models.marker import Marker, MarkerCategory
from perceptacle.services.marker_service import MARKERS_COLLECTION, MarkerService
from perceptacle.utils.errors import InvalidInputError, NotFoundError


def _doc(marker_id: str | None, title: str = "Spring", **extra) -> dict:
    return {
        "id": marker_id,
        "lat": 35.9,
        "lon": -94.2,
        "title": title,
        "description": None,
        "category": "plant",
        "userId": "alice",
        "timestamp": 1_700_000_000_000,
        **extra,
    }


@pytest.fixture
def service(memory_store) -> MarkerService:
    return MarkerService(memory_store)


# ======================================================================
# Model
# ======================================================================


class TestMarkerCategory:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("plant", MarkerCategory.PLANT),
            ("  HISTORY ", MarkerCategory.HISTORY),
            ("misc", MarkerCategory.MISC),
            ("volcano", MarkerCategory.MISC),
            (None, MarkerCategory.MISC),
            (MarkerCategory.PLANT, MarkerCategory.PLANT),
        ],
    )
    def test_normalize(self, raw, expected) -> None:
        assert MarkerCategory.normalize(raw) is expected

    def test_new_marker_gets_id(self) -> None:
        first = Marker(lat=1, lon=2, title="a")
        second = Marker(lat=1, lon=2, title="a")
        assert first.id and second.id and first.id != second.id

    def test_document_is_camel_case(self) -> None:
        doc = Marker(lat=1, lon=2, title="a", user_id="bob").to_document()
        assert doc["userId"] == "bob"
        assert doc["category"] == "misc"


# ======================================================================
# Service
# ======================================================================


class TestListMarkers:
    @pytest.mark.asyncio
    async def test_legacy_markers_keep_null_id(self, service, memory_store) -> None:
        legacy = _doc(None)
        del legacy["id"]
        memory_store.data["markers"] = [legacy, _doc("m1")]

        markers = await service.list_markers()

        assert [m.id for m in markers] == [None, "m1"]

    @pytest.mark.asyncio
    async def test_marker_without_coordinates_listed(self, service, memory_store) -> None:
        memory_store.data["markers"] = [{"title": "no coords"}, _doc("ok")]

        markers = await service.list_markers()

        assert [m.title for m in markers] == ["no coords", "Spring"]
        assert markers[0].lat is None and markers[0].lon is None

    @pytest.mark.asyncio
    async def test_unreadable_entries_skipped(self, service, memory_store) -> None:
        memory_store.data["markers"] = [{"lat": 1, "lon": 2}, "junk", _doc("ok")]
        assert [m.id for m in await service.list_markers()] == ["ok"]

    @pytest.mark.asyncio
    async def test_non_list_document(self, service, memory_store) -> None:
        memory_store.data["markers"] = {"oops": True}
        assert await service.list_markers() == []


class TestCreateMarker:
    @pytest.mark.asyncio
    async def test_creates_with_id(self, service, memory_store) -> None:
        marker = await service.create_marker(
            lat=35.92, lon=-94.19, title="Old mill", category="History", user_id="alice"
        )

        assert marker.id
        assert marker.category is MarkerCategory.HISTORY
        stored = memory_store.data["markers"]
        assert stored == [marker.to_document()]
        assert stored[0]["userId"] == "alice"

    @pytest.mark.asyncio
    async def test_zero_coordinates_allowed(self, service) -> None:
        marker = await service.create_marker(lat=0.0, lon=0.0, title="Null Island")
        assert marker.lat == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [
            {"lat": None, "lon": 1.0, "title": "x"},
            {"lat": 1.0, "lon": None, "title": "x"},
            {"lat": 1.0, "lon": 1.0, "title": ""},
        ],
    )
    async def test_missing_fields(self, service, memory_store, fields) -> None:
        with pytest.raises(InvalidInputError, match="Missing fields"):
            await service.create_marker(**fields)
        assert memory_store.writes == []


class TestUpdateMarker:
    @pytest.mark.asyncio
    async def test_update_by_id_keeps_identity(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1"), _doc("m2")]

        updated = await service.update_marker(
            marker_id="m2", lat=36.0, lon=-94.0, title="Renamed", category="misc"
        )

        assert updated.id == "m2"
        assert updated.user_id == "alice"
        assert updated.title == "Renamed"
        stored = memory_store.data[MARKERS_COLLECTION]
        assert stored[1]["title"] == "Renamed"
        assert stored[1]["id"] == "m2"
        assert stored[0]["title"] == "Spring"

    @pytest.mark.asyncio
    async def test_missing_coordinates_keep_stored(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1")]
        updated = await service.update_marker(marker_id="m1", title="Only title")
        assert (updated.lat, updated.lon) == (35.9, -94.2)

    @pytest.mark.asyncio
    async def test_legacy_marker_by_index(self, service, memory_store) -> None:
        legacy = _doc(None)
        memory_store.data["markers"] = [legacy]

        updated = await service.update_marker(index=0, title="Still legacy")

        assert updated.id is None
        assert memory_store.data["markers"][0]["id"] is None

    @pytest.mark.asyncio
    async def test_unknown_id_falls_back_to_index(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1"), _doc("m2")]

        updated = await service.update_marker(marker_id="ghost", index=1, title="Renamed")

        assert updated.id == "m2"
        assert memory_store.data["markers"][1]["title"] == "Renamed"
        assert memory_store.data["markers"][0]["title"] != "Renamed"

    @pytest.mark.asyncio
    async def test_unknown_id_without_index(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1")]
        with pytest.raises(NotFoundError, match="Marker not found"):
            await service.update_marker(marker_id="ghost", title="x")

    @pytest.mark.asyncio
    async def test_index_skips_unreadable_entries(self, service, memory_store) -> None:
        memory_store.data["markers"] = [{"lat": "north"}, _doc("m1"), _doc("m2")]

        updated = await service.update_marker(index=1, title="Second")

        assert updated.id == "m2"
        assert memory_store.data["markers"][0] == {"lat": "north"}
        assert memory_store.data["markers"][2]["title"] == "Second"
        assert memory_store.data["markers"][1]["title"] == "Spring"

    @pytest.mark.asyncio
    async def test_requires_title(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1")]
        with pytest.raises(InvalidInputError, match="Missing index/title"):
            await service.update_marker(marker_id="m1", title="")

    @pytest.mark.asyncio
    async def test_requires_address(self, service) -> None:
        with pytest.raises(InvalidInputError, match="Missing index/title"):
            await service.update_marker(title="x")


class TestDeleteMarker:
    @pytest.mark.asyncio
    async def test_delete_by_id(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1"), _doc("m2")]
        await service.delete_marker(marker_id="m1")
        assert [d["id"] for d in memory_store.data["markers"]] == ["m2"]

    @pytest.mark.asyncio
    async def test_delete_by_index(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1"), _doc("m2")]
        await service.delete_marker(index=1)
        assert [d["id"] for d in memory_store.data["markers"]] == ["m1"]

    @pytest.mark.asyncio
    async def test_index_counts_listed_markers_only(self, service, memory_store) -> None:
        memory_store.data["markers"] = ["junk", {"title": "no coords"}, _doc("m1"), _doc("m2")]
        listed = await service.list_markers()
        assert [m.id for m in listed][1:] == ["m1", "m2"]

        await service.delete_marker(index=2)

        remaining = memory_store.data["markers"]
        assert remaining[0] == "junk"
        assert [d["id"] for d in remaining[2:]] == ["m1"]
        assert len(remaining) == 3

    @pytest.mark.asyncio
    async def test_stale_index(self, service, memory_store) -> None:
        memory_store.data["markers"] = [_doc("m1")]
        with pytest.raises(NotFoundError):
            await service.delete_marker(index=4)

    @pytest.mark.asyncio
    async def test_requires_address(self, service) -> None:
        with pytest.raises(InvalidInputError, match="Missing index"):
            await service.delete_marker()
