"""Perceptacle API layer: routes, schemas and middleware."""

from perceptacle.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    configure_cors,
)
from perceptacle.api.routes import health_router, router
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

__all__ = [
    "ConfigResponse",
    "CreateTipRequest",
    "DeleteTipRequest",
    "ErrorHandlingMiddleware",
    "ErrorResponse",
    "HealthResponse",
    "MarkerRequest",
    "PhotoUploadResponse",
    "PublishTipRequest",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "UpdateTipRequest",
    "configure_cors",
    "health_router",
    "router",
]
