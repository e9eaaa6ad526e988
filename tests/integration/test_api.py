"""Integration tests for the FastAPI application using TestClient.

The app is built by ``create_app`` with settings pointing at ``tmp_path``,
so markers, tips and uploads go through the real JSON store and photo
storage.  Services that would reach the network are swapped for mocks on
``app.state`` after startup.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from perceptacle.config.settings import Settings
from perceptacle.main import create_app
from perceptacle.models.geocode import BoundingBox
from perceptacle.providers.geocoding.base import point_result
from perceptacle.services.geocode_service import GeocodeOrchestrator
from perceptacle.services.proxy_service import ProxyResponse, UpstreamProxy
from perceptacle.services.wikipedia_service import WikipediaNearbyService, WikipediaPlace
from perceptacle.utils.errors import GatewayError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def client(test_settings: Settings):
    app = create_app(test_settings, config={})
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def keyless_client(test_settings: Settings):
    settings = test_settings.model_copy(
        update={"opencage_key": "", "w3w_api_key": "", "nasa_api_key": ""}
    )
    with TestClient(create_app(settings, config={})) as test_client:
        yield test_client


def _mock_geocoder(client: TestClient, results=None) -> MagicMock:
    geocoder = MagicMock(spec=GeocodeOrchestrator)
    geocoder.geocode = AsyncMock(return_value=results or [])
    geocoder.suggest = AsyncMock(return_value=results or [])
    geocoder.reverse = AsyncMock(return_value=results or [])
    client.app.state.geocoder = geocoder
    return geocoder


def _create_tip(client: TestClient, **body) -> dict:
    response = client.post("/api/tips", json={"siteId": "07055660", "text": "note", **body})
    assert response.status_code == 201
    return response.json()


# ======================================================================
# Health, config and middleware
# ======================================================================


class TestHealthAndConfig:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_config_reports_features_without_keys(self, client: TestClient) -> None:
        body = client.get("/api/config").json()
        assert body == {"opencageEnabled": True, "hasNasa": True}
        assert "oc-test-key" not in json.dumps(body)

    def test_config_without_keys(self, keyless_client: TestClient) -> None:
        assert keyless_client.get("/api/config").json() == {
            "opencageEnabled": False,
            "hasNasa": False,
        }

    def test_security_headers(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_startup_wires_components(self, client: TestClient) -> None:
        state = client.app.state
        assert isinstance(state.geocoder, GeocodeOrchestrator)
        assert isinstance(state.proxy, UpstreamProxy)
        assert isinstance(state.wikipedia, WikipediaNearbyService)
        assert state.geocoder.get_available_providers()[-1] == "opencage"


class TestStartupMigration:
    def test_legacy_tip_keys_migrated(self, test_settings: Settings) -> None:
        data_dir = Path(test_settings.data_dir)
        data_dir.mkdir(parents=True)
        (data_dir / "tips.json").write_text(
            json.dumps({"07055660": [{"id": "old", "text": "legacy", "timestamp": 1, "status": "published"}]})
        )

        with TestClient(create_app(test_settings, config={})) as client:
            tips = client.get("/api/tips", params={"siteId": "07055660"}).json()

        assert [t["id"] for t in tips] == ["old"]
        stored = json.loads((data_dir / "tips.json").read_text())
        assert list(stored) == ["usgs:07055660"]


# ======================================================================
# Geocoding
# ======================================================================


class TestGeocodeRoutes:
    def test_geocode_with_viewport(self, client: TestClient) -> None:
        place = point_result("West Fork, AR", 35.92, -94.19)
        geocoder = _mock_geocoder(client, [place])

        response = client.get(
            "/api/geocode",
            params={"q": "West Fork", "south": 35.8, "west": -94.4, "north": 36.2, "east": -94.0},
        )

        assert response.status_code == 200
        assert response.json() == [
            {
                "name": "West Fork, AR",
                "center": {"lat": 35.92, "lon": -94.19},
                "bbox": {"south": 35.92, "west": -94.19, "north": 35.92, "east": -94.19},
            }
        ]
        geocoder.geocode.assert_awaited_once_with(
            "West Fork", BoundingBox(south=35.8, west=-94.4, north=36.2, east=-94.0)
        )

    def test_partial_viewport_ignored(self, client: TestClient) -> None:
        geocoder = _mock_geocoder(client)
        client.get("/api/geocode", params={"q": "x", "south": 1, "west": 2})
        geocoder.geocode.assert_awaited_once_with("x", None)

    def test_suggest(self, client: TestClient) -> None:
        geocoder = _mock_geocoder(client)
        assert client.get("/api/geocode/suggest", params={"q": "Fay"}).json() == []
        geocoder.suggest.assert_awaited_once_with("Fay")

    def test_reverse(self, client: TestClient) -> None:
        geocoder = _mock_geocoder(client)
        client.get("/api/geocode/reverse", params={"lat": 35.9, "lon": -94.2, "zoom": 14})
        geocoder.reverse.assert_awaited_once_with(35.9, -94.2, 14)

    def test_reverse_rejects_out_of_range(self, client: TestClient) -> None:
        _mock_geocoder(client)
        assert client.get("/api/geocode/reverse", params={"lat": 95, "lon": 0}).status_code == 422


# ======================================================================
# Markers
# ======================================================================


class TestMarkerRoutes:
    def test_crud_flow(self, client: TestClient) -> None:
        created = client.post(
            "/api/markers",
            json={"lat": 35.92, "lon": -94.19, "title": "Old mill", "category": "history", "userId": "alice"},
        )
        assert created.status_code == 201
        marker = created.json()
        assert marker["userId"] == "alice"
        assert marker["category"] == "history"

        listed = client.get("/api/markers").json()
        assert [m["id"] for m in listed] == [marker["id"]]

        updated = client.put("/api/markers", json={"id": marker["id"], "title": "Mill ruins"})
        assert updated.status_code == 200
        assert updated.json()["title"] == "Mill ruins"
        assert updated.json()["lat"] == 35.92

        deleted = client.request("DELETE", "/api/markers", json={"id": marker["id"]})
        assert deleted.status_code == 204
        assert client.get("/api/markers").json() == []

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/markers", json={"lat": 1.0, "lon": 2.0})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing fields", "detail": "InvalidInputError"}

    def test_stale_index(self, client: TestClient) -> None:
        response = client.put("/api/markers", json={"index": 7, "title": "x"})
        assert response.status_code == 404
        assert response.json()["error"] == "Marker not found"


# ======================================================================
# Tips
# ======================================================================


class TestTipRoutes:
    def test_draft_visibility_and_publish(self, client: TestClient) -> None:
        draft = _create_tip(client, text="Maybe flooded", userId="alice", status="draft")
        assert draft["status"] == "draft"

        anonymous = client.get("/api/tips", params={"siteId": "07055660"}).json()
        owner = client.get("/api/tips", params={"siteId": "07055660", "viewer": "alice"}).json()
        stranger = client.get("/api/tips", params={"siteId": "07055660", "viewer": "bob"}).json()
        assert anonymous == []
        assert [t["id"] for t in owner] == [draft["id"]]
        assert stranger == []

        forbidden = client.put(
            "/api/tips/publish",
            json={"siteId": "07055660", "id": draft["id"], "userId": "bob"},
        )
        assert forbidden.status_code == 403
        assert forbidden.json() == {"error": "Not your draft", "detail": "ForbiddenError"}

        published = client.put(
            "/api/tips/publish",
            json={"siteId": "07055660", "id": draft["id"], "userId": "alice"},
        )
        assert published.status_code == 200
        assert published.json()["status"] == "published"
        assert [t["id"] for t in client.get("/api/tips", params={"siteId": "07055660"}).json()] == [
            draft["id"]
        ]

    def test_list_without_target(self, client: TestClient) -> None:
        _create_tip(client)
        assert client.get("/api/tips").json() == []

    def test_marker_index_zero(self, client: TestClient) -> None:
        created = client.post("/api/tips", json={"markerIndex": 0, "text": "by the gate"})
        assert created.status_code == 201
        tips = client.get("/api/tips", params={"key": "custom:0"}).json()
        assert [t["text"] for t in tips] == ["by the gate"]

    def test_get_one(self, client: TestClient) -> None:
        tip = _create_tip(client, status="draft", userId="alice")
        response = client.get(f"/api/tips/{tip['id']}", params={"siteId": "07055660"})
        assert response.status_code == 200
        assert response.json()["id"] == tip["id"]
        assert client.get("/api/tips/nope", params={"siteId": "07055660"}).status_code == 404

    def test_update_clears_photo(self, client: TestClient) -> None:
        tip = _create_tip(client, photoUrl="/uploads/tips/1.jpg")

        kept = client.put("/api/tips", json={"siteId": "07055660", "id": tip["id"], "text": "edited"})
        assert kept.json()["photoUrl"] == "/uploads/tips/1.jpg"

        cleared = client.put("/api/tips", json={"siteId": "07055660", "id": tip["id"], "photoUrl": None})
        assert cleared.status_code == 200
        assert cleared.json()["photoUrl"] is None
        assert cleared.json()["text"] == "edited"

    def test_delete(self, client: TestClient) -> None:
        first = _create_tip(client, text="one")
        _create_tip(client, text="two")

        response = client.request("DELETE", "/api/tips", json={"siteId": "07055660", "id": first["id"]})

        assert response.status_code == 204
        remaining = client.get("/api/tips", params={"siteId": "07055660"}).json()
        assert [t["text"] for t in remaining] == ["two"]

    def test_create_requires_text(self, client: TestClient) -> None:
        response = client.post("/api/tips", json={"siteId": "07055660"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing target or text"

    def test_delete_requires_address(self, client: TestClient) -> None:
        response = client.request("DELETE", "/api/tips", json={"siteId": "07055660"})
        assert response.status_code == 400


class TestTipPhotoUpload:
    def test_upload_then_serve(self, client: TestClient) -> None:
        response = client.post(
            "/api/tip-photos",
            files={"photo": ("river.jpg", b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")},
        )

        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith("/uploads/tips/") and url.endswith(".jpg")
        served = client.get(url)
        assert served.status_code == 200
        assert served.content == b"\xff\xd8\xff\xe0fake-jpeg"

    def test_rejects_non_image(self, client: TestClient) -> None:
        response = client.post(
            "/api/tip-photos",
            files={"photo": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported file extension"

    def test_missing_file(self, client: TestClient) -> None:
        response = client.post("/api/tip-photos")
        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"


# ======================================================================
# Proxies and Wikipedia
# ======================================================================


class TestProxyRoutes:
    def test_photon_relayed_verbatim(self, client: TestClient) -> None:
        proxy = MagicMock(spec=UpstreamProxy)
        proxy.photon = AsyncMock(
            return_value=ProxyResponse(
                status_code=200,
                body=b'{"features": []}',
                cache_control="public, max-age=300",
            )
        )
        client.app.state.proxy = proxy

        response = client.get("/api/photon", params={"q": "Winslow", "limit": "2"})

        assert response.status_code == 200
        assert response.content == b'{"features": []}'
        assert response.headers["Cache-Control"] == "public, max-age=300"
        assert dict(proxy.photon.await_args.args[0]) == {"q": "Winslow", "limit": "2"}

    def test_3wa_requires_coordinates(self, client: TestClient) -> None:
        response = client.get("/api/3wa", params={"lat": "51.5"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing lat/lon"

    def test_non_json_upstream_is_bad_gateway(self, client: TestClient) -> None:
        proxy = MagicMock(spec=UpstreamProxy)
        proxy.nasa_apod = AsyncMock(
            side_effect=GatewayError(message="nasa-apod returned a non-JSON body", provider_name="nasa-apod")
        )
        client.app.state.proxy = proxy

        response = client.get("/api/nasa/apod")

        assert response.status_code == 502
        assert response.json() == {
            "error": "nasa-apod returned a non-JSON body",
            "detail": "GatewayError",
        }

    def test_missing_keys_are_configuration_errors(self, keyless_client: TestClient) -> None:
        for path in ("/api/opencage?q=x", "/api/nasa/apod", "/api/nasa/epic", "/api/3wa?lat=1&lon=2"):
            response = keyless_client.get(path)
            assert response.status_code == 500
            assert response.json()["detail"] == "ConfigurationError"


class TestWikipediaRoutes:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/wikipedia/nearby",
            "/api/wiki/nearby",
            "/api/wikidata/nearby",
            "/api/wiki/historic",
            "/api/wikidata/historic",
        ],
    )
    def test_aliases(self, client: TestClient, path: str) -> None:
        wikipedia = MagicMock(spec=WikipediaNearbyService)
        wikipedia.nearby = AsyncMock(
            return_value=[WikipediaPlace(pageid=2, title="Near Mill", dist_km=0.1, url="u")]
        )
        client.app.state.wikipedia = wikipedia

        response = client.get(path, params={"lat": "35.9", "lon": "-94.2", "km": "3"})

        assert response.status_code == 200
        assert response.json()[0]["distKm"] == 0.1
        wikipedia.nearby.assert_awaited_once_with("35.9", "-94.2", km="3", limit=None)

    def test_invalid_coordinates(self, client: TestClient) -> None:
        response = client.get("/api/wikipedia/nearby", params={"lat": "abc", "lon": "1"})
        assert response.status_code == 400


# ======================================================================
# Frontend
# ======================================================================


class TestFrontend:
    def test_spa_fallback(self, test_settings: Settings, tmp_path: Path) -> None:
        dist = tmp_path / "dist"
        (dist / "assets").mkdir(parents=True)
        (dist / "index.html").write_text("<html>map</html>")
        (dist / "assets" / "app.js").write_text("console.log(1)")

        with TestClient(create_app(test_settings, config={})) as client:
            deep_link = client.get("/sites/07055660")
            asset = client.get("/assets/app.js")
            unknown_api = client.get("/api/does-not-exist")

        assert deep_link.status_code == 200
        assert deep_link.text == "<html>map</html>"
        assert asset.text == "console.log(1)"
        assert unknown_api.status_code == 404
