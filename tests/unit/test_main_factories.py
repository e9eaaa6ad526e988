"""Unit tests for the assembly functions in perceptacle/main.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from perceptacle.config.settings import Settings
from perceptacle.main import _build_all, _build_geocoding_chain, create_app
from perceptacle.providers.cache.memory_cache import MemoryCacheProvider
from perceptacle.services.geocode_service import GeocodeOrchestrator
from perceptacle.services.marker_service import MarkerService
from perceptacle.services.tip_service import TipService

_CONFIG = {
    "geocoding": {
        "census": {
            "benchmarks": {"current": "Public_AR_Current", "census2020": "Public_AR_Census2020"},
            "zip_hints": {"ELKINS,AR": ["72727"]},
        },
        "photon": {"limit": 3},
    },
    "cache": {"opencage": {"max_entries": 10, "ttl_seconds": 5}},
}


# ======================================================================
# _build_geocoding_chain
# ======================================================================


class TestBuildGeocodingChain:
    def test_stage_order(self, mock_http_client, test_settings: Settings) -> None:
        stages = _build_geocoding_chain(mock_http_client, test_settings, _CONFIG, MemoryCacheProvider())

        assert [s.get_provider_name() for s in stages] == [
            "nominatim-bounded",
            "nominatim",
            "photon",
            "census-oneline:Public_AR_Current",
            "census-address:Public_AR_Current",
            "census-address:Public_AR_Census2020",
            "arcgis",
            "opencage",
        ]

    def test_empty_config_uses_defaults(self, mock_http_client, test_settings: Settings) -> None:
        stages = _build_geocoding_chain(mock_http_client, test_settings, {}, MemoryCacheProvider())
        assert len(stages) == 8
        assert stages[5].get_provider_name() == "census-address:Public_AR_Census2020"

    def test_opencage_unavailable_without_key(self, mock_http_client, test_settings: Settings) -> None:
        settings = test_settings.model_copy(update={"opencage_key": ""})
        stages = _build_geocoding_chain(mock_http_client, settings, {}, MemoryCacheProvider())
        assert stages[-1].is_available() is False


# ======================================================================
# _build_all
# ======================================================================


class TestBuildAll:
    @pytest.mark.asyncio
    async def test_components(self, test_settings: Settings) -> None:
        components = _build_all(test_settings, _CONFIG)
        try:
            assert components["settings"] is test_settings
            assert isinstance(components["geocoder"], GeocodeOrchestrator)
            assert isinstance(components["tip_service"], TipService)
            assert isinstance(components["marker_service"], MarkerService)
            assert set(components) >= {
                "http_client",
                "store",
                "proxy",
                "wikipedia",
                "photo_storage",
            }
        finally:
            await components["http_client"].aclose()


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_returns_fastapi(self, test_settings: Settings) -> None:
        app = create_app(test_settings, config={})
        assert isinstance(app, FastAPI)

        paths = {getattr(route, "path", None) for route in app.routes}
        assert {"/health", "/api/geocode", "/api/tips", "/api/markers", "/uploads"} <= paths

    def test_no_frontend_route_without_build(self, test_settings: Settings) -> None:
        assert not Path(test_settings.frontend_dir).exists()
        app = create_app(test_settings, config={})
        assert "/{full_path:path}" not in {getattr(r, "path", None) for r in app.routes}
