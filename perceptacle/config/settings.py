"""Application settings loaded from environment variables via pydantic-settings.

Values come from two sources, highest priority first:

  1. Environment variables, e.g. ``OPENCAGE_KEY=abc123``
  2. A ``.env`` file in the working directory (local development)

Field ``opencage_key`` maps to ``OPENCAGE_KEY``; pydantic-settings matches
case-insensitively.  Defaults apply when neither source sets a field.

API keys are only ever read here and attached to upstream requests on the
server; they are never echoed back to clients.  ``.env.example`` lists every
variable.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Perceptacle application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === API keys ===
    # Empty string = "not configured".  The OpenCage stage and the key-gated
    # proxies report themselves unavailable when their key is empty.
    opencage_key: str = ""
    w3w_api_key: str = ""
    nasa_api_key: str = ""

    # === Upstream endpoints ===
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    photon_url: str = "https://photon.komoot.io"
    census_url: str = "https://geocoding.geo.census.gov/geocoder"
    arcgis_url: str = (
        "https://geocode.arcgis.com/arcgis/rest/services/World/GeocodeServer"
    )
    opencage_url: str = "https://api.opencagedata.com/geocode/v1/json"
    w3w_url: str = "https://api.what3words.com/v3"
    nasa_url: str = "https://api.nasa.gov"
    wikipedia_url: str = "https://en.wikipedia.org/w/api.php"
    user_agent: str = "ElectricGavinoe/1.0 (+local)"
    http_timeout_seconds: float = 15.0

    # === Storage ===
    data_dir: str = "data"
    uploads_dir: str = "public/uploads"
    frontend_dir: str = "dist"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"
    # Comma-separated list; empty allows any origin.
    cors_origins: str = ""

    def get_available_geocoders(self) -> list[str]:
        """Return the names of key-gated geocoders that have a key configured."""
        providers: list[str] = []
        if self.opencage_key.strip():
            providers.append("opencage")
        return providers

    def get_cors_origins(self) -> list[str]:
        """Split ``cors_origins`` into a list, dropping blanks."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
