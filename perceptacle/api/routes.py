"""FastAPI routes for the Perceptacle map backend.

Service dependencies are resolved from ``app.state`` via ``Depends`` using
the ``Annotated`` pattern, so handlers stay thin and tests can drop mocks
onto ``app.state``.

Route map
---------

    Endpoint                         Method              Description
    ────────────────────────────────────────────────────────────────────────
    /health                          GET                 Liveness probe
    /api/config                      GET                 Optional features
    /api/geocode                     GET                 Fallback-chain search
    /api/geocode/suggest             GET                 Autocomplete (Photon)
    /api/geocode/reverse             GET                 Reverse geocoding
    /api/markers                     GET/POST/PUT/DELETE Marker CRUD
    /api/tips                        GET/POST/PUT/DELETE Tip CRUD
    /api/tips/publish                PUT                 Draft → published
    /api/tips/{tip_id}               GET                 One tip by id
    /api/tip-photos                  POST                Photo upload
    /api/photon, /api/census/*,
    /api/opencage, /api/3wa,
    /api/nasa/*                      GET                 Upstream proxies
    /api/wikipedia/nearby (+aliases) GET                 Nearby articles

Application errors are raised as ``PerceptacleError`` subclasses and turned
into JSON by ``ErrorHandlingMiddleware``.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile

from perceptacle.api.schemas import (
    ConfigResponse,
    CreateTipRequest,
    DeleteTipRequest,
    ErrorResponse,
    HealthResponse,
    MarkerRequest,
    PhotoUploadResponse,
    PublishTipRequest,
    UpdateTipRequest,
)
from perceptacle.config.settings import Settings
from perceptacle.models.geocode import BoundingBox, GeocodeResult
from perceptacle.models.marker import Marker
from perceptacle.models.tip import Tip, TipTarget
from perceptacle.services.geocode_service import GeocodeOrchestrator
from perceptacle.services.marker_service import MarkerService
from perceptacle.services.photo_service import PhotoStorage
from perceptacle.services.proxy_service import ProxyResponse, UpstreamProxy
from perceptacle.services.tip_service import UNSET, TipService
from perceptacle.services.wikipedia_service import WikipediaNearbyService, WikipediaPlace

router = APIRouter(prefix="/api")
health_router = APIRouter()

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_geocoder(request: Request) -> GeocodeOrchestrator:
    return request.app.state.geocoder


def _get_marker_service(request: Request) -> MarkerService:
    return request.app.state.marker_service


def _get_tip_service(request: Request) -> TipService:
    return request.app.state.tip_service


def _get_proxy(request: Request) -> UpstreamProxy:
    return request.app.state.proxy


def _get_wikipedia(request: Request) -> WikipediaNearbyService:
    return request.app.state.wikipedia


def _get_photo_storage(request: Request) -> PhotoStorage:
    return request.app.state.photo_storage


SettingsDep = Annotated[Settings, Depends(_get_settings)]
GeocoderDep = Annotated[GeocodeOrchestrator, Depends(_get_geocoder)]
MarkerServiceDep = Annotated[MarkerService, Depends(_get_marker_service)]
TipServiceDep = Annotated[TipService, Depends(_get_tip_service)]
ProxyDep = Annotated[UpstreamProxy, Depends(_get_proxy)]
WikipediaDep = Annotated[WikipediaNearbyService, Depends(_get_wikipedia)]
PhotoStorageDep = Annotated[PhotoStorage, Depends(_get_photo_storage)]


def _relay(upstream: ProxyResponse) -> Response:
    """Turn a proxied upstream answer into a response, verbatim."""
    headers = {"Cache-Control": upstream.cache_control} if upstream.cache_control else None
    return Response(
        content=upstream.body,
        status_code=upstream.status_code,
        media_type=upstream.content_type,
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Health & config
# ---------------------------------------------------------------------------


@health_router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health() -> HealthResponse:
    return HealthResponse(ok=True)


@router.get("/config", response_model=ConfigResponse, summary="Optional features")
async def get_config(settings: SettingsDep) -> ConfigResponse:
    """Tell the client which key-gated features exist, without revealing keys."""
    return ConfigResponse(
        opencage_enabled=bool(settings.opencage_key.strip()),
        has_nasa=bool(settings.nasa_api_key.strip()),
    )


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


@router.get("/geocode", response_model=list[GeocodeResult], summary="Search for a place")
async def geocode(
    geocoder: GeocoderDep,
    q: str = "",
    south: float | None = None,
    west: float | None = None,
    north: float | None = None,
    east: float | None = None,
) -> list[GeocodeResult]:
    """Run the fallback chain; the viewport is used only when all four edges are sent."""
    viewport = None
    if None not in (south, west, north, east):
        viewport = BoundingBox(south=south, west=west, north=north, east=east)
    return await geocoder.geocode(q, viewport)


@router.get("/geocode/suggest", response_model=list[GeocodeResult], summary="Autocomplete")
async def geocode_suggest(geocoder: GeocoderDep, q: str = "") -> list[GeocodeResult]:
    return await geocoder.suggest(q)


@router.get("/geocode/reverse", response_model=list[GeocodeResult], summary="Reverse geocode")
async def geocode_reverse(
    geocoder: GeocoderDep,
    lat: Annotated[float, Query(ge=-90, le=90)],
    lon: Annotated[float, Query(ge=-180, le=180)],
    zoom: int | None = None,
) -> list[GeocodeResult]:
    return await geocoder.reverse(lat, lon, zoom)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


@router.get("/markers", response_model=list[Marker], summary="List markers")
async def list_markers(markers: MarkerServiceDep) -> list[Marker]:
    return await markers.list_markers()


@router.post("/markers", response_model=Marker, status_code=201, responses=_ERRORS)
async def create_marker(body: MarkerRequest, markers: MarkerServiceDep) -> Marker:
    return await markers.create_marker(
        lat=body.lat,
        lon=body.lon,
        title=body.title,
        description=body.description,
        category=body.category,
        user_id=body.user_id,
    )


@router.put("/markers", response_model=Marker, responses=_ERRORS)
async def update_marker(body: MarkerRequest, markers: MarkerServiceDep) -> Marker:
    return await markers.update_marker(
        marker_id=body.id,
        index=body.index,
        lat=body.lat,
        lon=body.lon,
        title=body.title,
        description=body.description,
        category=body.category,
    )


@router.delete("/markers", status_code=204, responses=_ERRORS)
async def delete_marker(body: MarkerRequest, markers: MarkerServiceDep) -> Response:
    await markers.delete_marker(marker_id=body.id, index=body.index)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Tips
# ---------------------------------------------------------------------------


def _target_from_query(
    key: str | None = None,
    site_id: Annotated[str | None, Query(alias="siteId")] = None,
    marker_index: Annotated[int | None, Query(alias="markerIndex")] = None,
) -> TipTarget:
    return TipTarget(key=key, site_id=site_id, marker_index=marker_index)


TargetQueryDep = Annotated[TipTarget, Depends(_target_from_query)]


@router.get("/tips", response_model=list[Tip], summary="Tips visible to the viewer")
async def list_tips(
    target: TargetQueryDep,
    tips: TipServiceDep,
    viewer: str | None = None,
) -> list[Tip]:
    """Published tips plus the viewer's own drafts; ``[]`` without a target."""
    return await tips.list_tips(target, viewer)


@router.post("/tips", response_model=Tip, status_code=201, responses=_ERRORS)
async def create_tip(body: CreateTipRequest, tips: TipServiceDep) -> Tip:
    return await tips.create_tip(
        body.target(),
        text=body.text,
        user_id=body.user_id,
        photo_url=body.photo_url,
        status=body.status,
    )


@router.put("/tips", response_model=Tip, responses=_ERRORS)
async def update_tip(body: UpdateTipRequest, tips: TipServiceDep) -> Tip:
    photo_url = body.photo_url if "photo_url" in body.model_fields_set else UNSET
    return await tips.update_tip(
        body.target(),
        tip_id=body.id,
        index=body.index,
        text=body.text,
        photo_url=photo_url,
    )


@router.put(
    "/tips/publish",
    response_model=Tip,
    responses={**_ERRORS, 403: {"model": ErrorResponse}},
)
async def publish_tip(body: PublishTipRequest, tips: TipServiceDep) -> Tip:
    return await tips.publish_tip(
        body.target(),
        tip_id=body.id,
        index=body.index,
        user_id=body.user_id,
    )


@router.delete("/tips", status_code=204, responses=_ERRORS)
async def delete_tip(body: DeleteTipRequest, tips: TipServiceDep) -> Response:
    await tips.delete_tip(body.target(), tip_id=body.id, index=body.index)
    return Response(status_code=204)


@router.get("/tips/{tip_id}", response_model=Tip, responses=_ERRORS)
async def get_tip(tip_id: str, target: TargetQueryDep, tips: TipServiceDep) -> Tip:
    return await tips.get_tip(target, tip_id)


@router.post("/tip-photos", response_model=PhotoUploadResponse, responses=_ERRORS)
async def upload_tip_photo(
    photos: PhotoStorageDep,
    photo: Annotated[UploadFile | None, File()] = None,
) -> PhotoUploadResponse:
    """Store a photo (multipart field ``photo``) and return its public URL."""
    url = await photos.save_tip_photo(photo)
    return PhotoUploadResponse(url=url)


# ---------------------------------------------------------------------------
# Upstream proxies
# ---------------------------------------------------------------------------


@router.get("/photon", summary="Photon search passthrough")
async def photon_proxy(request: Request, proxy: ProxyDep) -> Response:
    return _relay(await proxy.photon(request.query_params))


@router.get("/census/oneline", summary="Census one-line passthrough")
async def census_oneline_proxy(
    proxy: ProxyDep,
    address: str | None = None,
    benchmark: str | None = None,
) -> Response:
    return _relay(await proxy.census_oneline(address, benchmark))


@router.get("/census/address", summary="Census structured passthrough")
async def census_address_proxy(
    proxy: ProxyDep,
    street: str | None = None,
    city: str | None = None,
    state: str | None = None,
    zip: str | None = None,
    benchmark: str | None = None,
) -> Response:
    return _relay(await proxy.census_address(street, city, state, zip, benchmark))


@router.get("/opencage", summary="OpenCage passthrough (cached)")
async def opencage_proxy(
    proxy: ProxyDep,
    q: str | None = None,
    limit: str | None = None,
    language: str | None = None,
    no_annotations: str | None = None,
    countrycode: str | None = None,
    proximity: str | None = None,
) -> Response:
    return _relay(
        await proxy.opencage(
            q,
            limit=limit,
            language=language,
            no_annotations=no_annotations,
            countrycode=countrycode,
            proximity=proximity,
        )
    )


@router.get("/3wa", summary="what3words address for a coordinate")
async def what3words_proxy(
    proxy: ProxyDep,
    lat: str | None = None,
    lon: str | None = None,
) -> Response:
    return _relay(await proxy.what3words(lat, lon))


@router.get("/nasa/apod", summary="NASA Astronomy Picture of the Day")
async def nasa_apod_proxy(proxy: ProxyDep) -> Response:
    return _relay(await proxy.nasa_apod())


@router.get("/nasa/epic", summary="NASA EPIC natural-colour images")
async def nasa_epic_proxy(proxy: ProxyDep) -> Response:
    return _relay(await proxy.nasa_epic())


# ---------------------------------------------------------------------------
# Wikipedia
# ---------------------------------------------------------------------------


async def wikipedia_nearby(
    wikipedia: WikipediaDep,
    lat: str | None = None,
    lon: str | None = None,
    km: str | None = None,
    limit: str | None = None,
) -> list[WikipediaPlace]:
    """Geotagged articles near a point, nearest first."""
    return await wikipedia.nearby(lat, lon, km=km, limit=limit)


for _path in (
    "/wikipedia/nearby",
    "/wiki/nearby",
    "/wikidata/nearby",
    "/wiki/historic",
    "/wikidata/historic",
):
    router.add_api_route(
        _path,
        wikipedia_nearby,
        methods=["GET"],
        response_model=list[WikipediaPlace],
        responses=_ERRORS,
        include_in_schema=_path == "/wikipedia/nearby",
    )
