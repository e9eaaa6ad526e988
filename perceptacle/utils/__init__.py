"""Utility modules for Perceptacle.

- **errors** -- Exception hierarchy rooted at PerceptacleError; each class
  carries the HTTP status the API middleware answers with.
- **logging** -- structlog setup with a dual renderer: coloured console
  output in development, JSON in production.
"""

from perceptacle.utils.errors import (
    ConfigurationError,
    ForbiddenError,
    GatewayError,
    GeocodingError,
    InvalidInputError,
    NotFoundError,
    PerceptacleError,
    ProviderUnavailableError,
)
from perceptacle.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "ForbiddenError",
    "GatewayError",
    "GeocodingError",
    "InvalidInputError",
    "NotFoundError",
    "PerceptacleError",
    "ProviderUnavailableError",
    "configure_logging",
    "get_logger",
]
