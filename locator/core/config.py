import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Geocoding providers
    GEO_PROVIDER: str = os.getenv("GEO_PROVIDER", "auto")          # auto | google | backend | local
    GOOGLE_MAPS_API_KEY: str | None = os.getenv("GOOGLE_MAPS_API_KEY")
    GOOGLE_MAPS_BASE_URL: str = os.getenv("GOOGLE_MAPS_BASE_URL", "https://maps.googleapis.com/maps/api")
    LOCATION_BACKEND_URL: str | None = os.getenv("LOCATION_BACKEND_URL")

    # Geocode cache
    GEOCODE_CACHE_TTL_SECONDS: int = int(os.getenv("GEOCODE_CACHE_TTL_SECONDS", "1800"))
    GEOCODE_CACHE_MAXSIZE: int = int(os.getenv("GEOCODE_CACHE_MAXSIZE", "10000"))

    # Position
    POSITION_PROVIDER: str = os.getenv("POSITION_PROVIDER", "ip")  # static | ip | none
    STATIC_LATITUDE: float | None = float(os.environ["STATIC_LATITUDE"]) if os.getenv("STATIC_LATITUDE") else None
    STATIC_LONGITUDE: float | None = float(os.environ["STATIC_LONGITUDE"]) if os.getenv("STATIC_LONGITUDE") else None
    IP_GEOLOCATION_URL: str = os.getenv("IP_GEOLOCATION_URL", "http://ip-api.com/json")
    POSITION_TIMEOUT_MS: int = int(os.getenv("POSITION_TIMEOUT_MS", "15000"))
    POSITION_MAX_AGE_MS: int = int(os.getenv("POSITION_MAX_AGE_MS", "300000"))

    # Location store
    LOCATION_STORE_PATH: str = os.getenv("LOCATION_STORE_PATH", "./data/location_store.json")
    LOCATION_RETENTION_DAYS: int = int(os.getenv("LOCATION_RETENTION_DAYS", "7"))
    RECENT_LOCATIONS_LIMIT: int = int(os.getenv("RECENT_LOCATIONS_LIMIT", "10"))
    RECENT_LOCATIONS_SHOWN: int = int(os.getenv("RECENT_LOCATIONS_SHOWN", "5"))

    # Delivery zones
    ZONE_PROVIDER: str = os.getenv("ZONE_PROVIDER", "local")       # local | http
    ZONE_BASE_URL: str | None = os.getenv("ZONE_BASE_URL")
    SERVICEABLE_CITIES: str = os.getenv(
        "SERVICEABLE_CITIES",
        "Mumbai,Delhi,Bangalore,Hyderabad,Chennai,Kolkata,Pune,Ahmedabad,Jaipur,Surat",
    )

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Counter cache (rate limiting)
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

    @property
    def serviceable_cities(self) -> list[str]:
        return [c.strip() for c in self.SERVICEABLE_CITIES.split(",") if c.strip()]

settings = Settings()
