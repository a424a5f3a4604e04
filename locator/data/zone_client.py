from typing import Optional
from .base import ZoneClient, Coordinate, ServiceabilityResult
from ..core.config import settings
from ..core.errors import ServiceabilityError
import httpx

class LocalZoneClient(ZoneClient):
    """
    Delivery zones as a list of serviceable city names.
    A location is serviceable when its city name contains one of them.
    """
    def __init__(self, cities: list[str] | None = None, estimate: str = "2-4 hours"):
        self.cities = cities if cities is not None else settings.serviceable_cities
        self.estimate = estimate

    async def check(self, city: str, state: str, coordinates: Optional[Coordinate]) -> ServiceabilityResult:
        name = (city or "").lower()
        ok = any(c.lower() in name for c in self.cities)
        return ServiceabilityResult(
            is_serviceable=ok,
            message="Delivery available in your area" if ok else "Delivery not available in your area yet",
            estimated_delivery_time=self.estimate if ok else None,
        )

class HttpZoneClient(ZoneClient):
    """
    Backend check-serviceable endpoint.
    """
    def __init__(self, base_url: str, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    async def check(self, city: str, state: str, coordinates: Optional[Coordinate]) -> ServiceabilityResult:
        body = {"city": city, "state": state, "coordinates": coordinates.to_dict() if coordinates else None}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(f"{self.base_url}/api/location/check-serviceable", json=body)
                r.raise_for_status()
                return ServiceabilityResult.from_dict(r.json())
        except httpx.HTTPError as exc:
            raise ServiceabilityError(f"check-serviceable failed: {exc!r}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceabilityError(f"check-serviceable: malformed response: {exc}") from exc

def zone_client() -> ZoneClient:
    if settings.ZONE_PROVIDER == "http" and settings.ZONE_BASE_URL:
        return HttpZoneClient(settings.ZONE_BASE_URL)
    return LocalZoneClient()
