"""Custom exception hierarchy for Perceptacle.

All application exceptions inherit from :class:`PerceptacleError`, which
carries an optional ``provider_name`` so error handlers can identify which
upstream service (e.g. "nominatim", "census", "opencage") caused the failure,
and a class-level ``status_code`` that the API middleware maps onto the HTTP
response.

    PerceptacleError  (base -- catch-all, HTTP 500)
    +-- InvalidInputError         (missing target key / required fields, 400)
    +-- ForbiddenError            (ownership violation, e.g. publishing someone else's draft, 403)
    +-- NotFoundError             (unknown tip / marker id or stale index, 404)
    +-- GatewayError              (upstream proxy failed or answered garbage, 502)
    +-- GeocodingError            (one geocoding stage failed, 502)
    +-- ProviderUnavailableError  (upstream unreachable, 502)
    +-- ConfigurationError        (missing API key or bad config, 500)

The geocoding orchestrator catches ``GeocodingError`` and
``ProviderUnavailableError`` per stage and moves on to the next provider, so
those two never reach a client through the search endpoint.
"""


class PerceptacleError(Exception):
    """Base exception for all Perceptacle errors.

    ``__str__`` prefixes the provider name in brackets for structured log
    output, e.g. ``[photon] HTTP 503``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request errors (tips / markers / uploads)
# ---------------------------------------------------------------------------

class InvalidInputError(PerceptacleError):
    """Raised before touching storage when a request lacks its target or fields."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid or missing input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ForbiddenError(PerceptacleError):
    """Raised when a user acts on a tip they do not own."""

    status_code = 403

    def __init__(
        self,
        message: str = "Not allowed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(PerceptacleError):
    """Raised when a tip or marker id/index does not resolve to an item."""

    status_code = 404

    def __init__(
        self,
        message: str = "Not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Upstream / provider errors
# ---------------------------------------------------------------------------

class GatewayError(PerceptacleError):
    """Raised when a proxied upstream API fails or returns an unusable body."""

    status_code = 502

    def __init__(
        self,
        message: str = "Upstream service failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GeocodingError(PerceptacleError):
    """Raised by a geocoding adapter when its request or response is unusable."""

    status_code = 502

    def __init__(
        self,
        message: str = "Geocoding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(PerceptacleError):
    """Raised when an external service is unreachable (timeout, DNS, refused)."""

    status_code = 502

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(PerceptacleError):
    """Raised when a required API key or setting is missing."""

    status_code = 500

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
