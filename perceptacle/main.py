"""Perceptacle FastAPI application entry point.

Wires together providers, services and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, mounts the uploads directory and, when it has been
built, the single-page frontend.

Run locally with::

    uvicorn perceptacle.main:app --reload --port 3000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from perceptacle.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    configure_cors,
)
from perceptacle.api.routes import health_router
from perceptacle.api.routes import router as api_router
from perceptacle.config.loader import load_config
from perceptacle.config.settings import Settings
from perceptacle.interfaces.geocoding_provider import IGeocodingProvider
from perceptacle.providers.cache.memory_cache import MemoryCacheProvider
from perceptacle.providers.geocoding.arcgis_provider import ArcGISProvider
from perceptacle.providers.geocoding.census_provider import (
    BENCHMARK_CENSUS2020,
    BENCHMARK_CURRENT,
    CensusAddressProvider,
    CensusOneLineProvider,
)
from perceptacle.providers.geocoding.nominatim_provider import NominatimProvider
from perceptacle.providers.geocoding.opencage_provider import OpenCageProvider
from perceptacle.providers.geocoding.photon_provider import PhotonProvider
from perceptacle.providers.store.json_file_store import JSONFileStore
from perceptacle.services.geocode_service import GeocodeOrchestrator
from perceptacle.services.marker_service import MarkerService
from perceptacle.services.photo_service import MAX_PHOTO_BYTES, UPLOAD_CHUNK_SIZE, PhotoStorage
from perceptacle.services.proxy_service import UpstreamProxy
from perceptacle.services.tip_service import TipService
from perceptacle.services.wikipedia_service import WikipediaNearbyService
from perceptacle.utils.errors import PerceptacleError
from perceptacle.utils.logging import configure_logging, get_logger

__version__ = "1.0.0"

# Paths under these prefixes are never answered with the SPA shell.
_NON_SPA_PREFIXES = ("api", "uploads", "health", "assets", "favicon.ico")

_logger: structlog.BoundLogger = get_logger(__name__)


def _section(config: dict[str, Any], *path: str) -> dict[str, Any]:
    """Walk nested config dicts, returning ``{}`` for any missing level."""
    node: Any = config
    for key in path:
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_geocoding_chain(
    http_client: httpx.AsyncClient,
    app_settings: Settings,
    config: dict[str, Any],
    opencage_cache: MemoryCacheProvider,
) -> list[IGeocodingProvider]:
    """Build the search stages in fallback order."""
    geo = _section(config, "geocoding")
    census = _section(geo, "census")
    benchmarks = _section(census, "benchmarks")
    zip_hints = census.get("zip_hints") or None
    ua = app_settings.user_agent
    nominatim_limit = _section(geo, "nominatim").get("limit", 5)

    return [
        NominatimProvider(
            http_client, app_settings.nominatim_url, ua, bounded=True, limit=nominatim_limit
        ),
        NominatimProvider(http_client, app_settings.nominatim_url, ua, limit=nominatim_limit),
        PhotonProvider(
            http_client,
            app_settings.photon_url,
            ua,
            lang=_section(geo, "photon").get("lang", "en"),
            limit=_section(geo, "photon").get("limit", 8),
        ),
        CensusOneLineProvider(
            http_client,
            app_settings.census_url,
            ua,
            benchmark=benchmarks.get("current", BENCHMARK_CURRENT),
        ),
        CensusAddressProvider(
            http_client,
            app_settings.census_url,
            ua,
            benchmark=benchmarks.get("current", BENCHMARK_CURRENT),
            zip_hints=zip_hints,
        ),
        CensusAddressProvider(
            http_client,
            app_settings.census_url,
            ua,
            benchmark=benchmarks.get("census2020", BENCHMARK_CENSUS2020),
            zip_hints=zip_hints,
        ),
        ArcGISProvider(
            http_client,
            app_settings.arcgis_url,
            ua,
            max_locations=_section(geo, "arcgis").get("max_locations", 5),
        ),
        OpenCageProvider(
            http_client,
            app_settings.opencage_key,
            cache=opencage_cache,
            base_url=app_settings.opencage_url,
            user_agent=ua,
            limit=_section(geo, "opencage").get("limit", 5),
        ),
    ]


def _build_all(app_settings: Settings, config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(
        timeout=app_settings.http_timeout_seconds,
        follow_redirects=True,
    )

    # -- Caches (one per upstream, never shared) --
    oc_cfg = _section(config, "cache", "opencage")
    wiki_cfg = _section(config, "cache", "wikipedia")
    geocoder_cache = MemoryCacheProvider(
        max_size=oc_cfg.get("max_entries", 300),
        ttl=oc_cfg.get("ttl_seconds", 300),
        name="opencage-geocoder",
    )
    opencage_proxy_cache = MemoryCacheProvider(
        max_size=oc_cfg.get("max_entries", 300),
        ttl=oc_cfg.get("ttl_seconds", 300),
        name="opencage-proxy",
    )
    wikipedia_cache = MemoryCacheProvider(
        max_size=wiki_cfg.get("max_entries", 500),
        ttl=wiki_cfg.get("ttl_seconds", 600),
        name="wikipedia",
    )

    # -- Geocoding --
    stages = _build_geocoding_chain(http_client, app_settings, config, geocoder_cache)
    geocoder = GeocodeOrchestrator(providers=stages)

    # -- Persistence --
    store = JSONFileStore(app_settings.data_dir)
    uploads_cfg = _section(config, "uploads")
    photo_storage = PhotoStorage(
        app_settings.uploads_dir,
        max_bytes=uploads_cfg.get("max_bytes", MAX_PHOTO_BYTES),
        chunk_size=uploads_cfg.get("chunk_bytes", UPLOAD_CHUNK_SIZE),
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "geocoder": geocoder,
        "store": store,
        "tip_service": TipService(store),
        "marker_service": MarkerService(store),
        "proxy": UpstreamProxy(http_client, app_settings, opencage_proxy_cache),
        "wikipedia": WikipediaNearbyService(
            http_client,
            wikipedia_cache,
            api_url=app_settings.wikipedia_url,
            user_agent=app_settings.user_agent,
        ),
        "photo_storage": photo_storage,
    }


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or Settings()
    config = config if config is not None else load_config(settings=app_settings)

    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        """Initialise providers and services on startup, clean up on shutdown."""
        components = _build_all(app_settings, config)
        for key, value in components.items():
            setattr(application.state, key, value)

        components["store"].initialize()
        components["photo_storage"].initialize()
        try:
            await components["tip_service"].migrate_keys()
        except (PerceptacleError, OSError) as exc:
            _logger.warning("tip_key_migration_skipped", error=str(exc))

        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            geocoders=components["geocoder"].get_available_providers(),
        )

        yield

        # -- Shutdown: close shared httpx client --
        http_client: httpx.AsyncClient = components["http_client"]
        await http_client.aclose()
        _logger.info("app_shutdown", message="HTTP client closed")

    application = FastAPI(
        title="Perceptacle API",
        version=__version__,
        description=(
            "Map exploration backend: layered geocoding search, user markers, "
            "draft/published tips on stream gages and markers, and proxies "
            "for third-party geodata APIs."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(SecurityHeadersMiddleware)
    configure_cors(application, allowed_origins=app_settings.get_cors_origins())

    # -- API routes --
    application.include_router(health_router)
    application.include_router(api_router)

    # -- Uploaded photos (directory is created by PhotoStorage on startup) --
    application.mount(
        "/uploads",
        StaticFiles(directory=app_settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    # -- Built frontend (SPA) --
    frontend_dir = Path(app_settings.frontend_dir).resolve()
    if frontend_dir.exists():
        if (frontend_dir / "assets").exists():
            application.mount(
                "/assets",
                StaticFiles(directory=str(frontend_dir / "assets")),
                name="assets",
            )

        @application.get("/{full_path:path}", include_in_schema=False)
        async def serve_frontend(full_path: str) -> FileResponse:
            if full_path.split("/", 1)[0] in _NON_SPA_PREFIXES:
                raise HTTPException(status_code=404, detail="Not found")
            candidate = (frontend_dir / full_path).resolve()
            if full_path and candidate.is_file() and candidate.is_relative_to(frontend_dir):
                return FileResponse(str(candidate))
            return FileResponse(
                str(frontend_dir / "index.html"),
                headers={"Cache-Control": "no-store"},
            )

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    """Console-script entry point: serve the app with uvicorn."""
    run_settings = Settings()
    uvicorn.run(
        "perceptacle.main:app",
        host=run_settings.app_host,
        port=run_settings.app_port,
        reload=(run_settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
