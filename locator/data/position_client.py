import asyncio
import logging
import time
from typing import Callable
from .base import PositionSource, PositionOptions, Coordinate
from ..core.config import settings
from ..core.errors import GeoError, PermissionDenied, PositionUnavailable, PositionTimeout, Unsupported
import httpx

log = logging.getLogger(__name__)

class StaticPositionSource(PositionSource):
    """
    Fixed device coordinates (kiosks, pinned stores, local dev).
    """
    def __init__(self, latitude: float, longitude: float, accuracy: float | None = None):
        self.coordinate = Coordinate(latitude, longitude, accuracy)

    async def current_position(self, high_accuracy: bool) -> Coordinate:
        return self.coordinate

class IpPositionSource(PositionSource):
    """
    Approximate position from an IP geolocation service (ip-api.com style JSON:
    {"status": "success", "lat": .., "lon": ..}). Always city-level, so
    high_accuracy has no effect.
    """
    # ip-api does not report a radius; city-level fixes are roughly this good
    APPROX_ACCURACY_M = 5000.0

    def __init__(self, url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.url = url or settings.IP_GEOLOCATION_URL
        self.transport = transport

    async def current_position(self, high_accuracy: bool) -> Coordinate:
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                r = await client.get(self.url)
                if r.status_code in (401, 403):
                    raise PermissionDenied()
                r.raise_for_status()
                j = r.json()
        except httpx.HTTPError as exc:
            raise PositionUnavailable(f"Location information unavailable ({exc.__class__.__name__})") from exc
        except ValueError as exc:
            raise PositionUnavailable() from exc
        if j.get("status", "success") != "success" or j.get("lat") is None or j.get("lon") is None:
            raise PositionUnavailable(f"Location information unavailable ({j.get('message', 'no fix')})")
        return Coordinate(float(j["lat"]), float(j["lon"]), self.APPROX_ACCURACY_M)

class GeoPositionProvider:
    """
    Single-shot position acquisition over a platform source.

    acquire() makes at most one platform call, never retries and never
    substitutes a default coordinate: every failure surfaces as a GeoError.
    A previous fix younger than options.max_age_ms is returned instead of
    asking the platform again.
    """
    def __init__(self, source: PositionSource | None, clock: Callable[[], float] = time.monotonic):
        self.source = source
        self._clock = clock
        self._last: tuple[float, Coordinate] | None = None

    def is_available(self) -> bool:
        return self.source is not None

    async def acquire(self, options: PositionOptions | None = None) -> Coordinate:
        options = options or PositionOptions()
        if self.source is None:
            raise Unsupported()

        if self._last is not None and options.max_age_ms > 0:
            taken_at, fix = self._last
            if (self._clock() - taken_at) * 1000 < options.max_age_ms:
                return fix

        try:
            fix = await asyncio.wait_for(
                self.source.current_position(options.high_accuracy),
                timeout=options.timeout_ms / 1000,
            )
        except asyncio.TimeoutError as exc:
            raise PositionTimeout() from exc
        self._last = (self._clock(), fix)
        return fix

    async def probe_permission(self) -> str:
        """
        "granted" | "denied" | "unavailable", by attempting one quick fix.
        """
        if not self.is_available():
            return "unavailable"
        try:
            await self.acquire(PositionOptions(timeout_ms=5000, max_age_ms=0))
            return "granted"
        except PermissionDenied:
            return "denied"
        except GeoError as exc:
            log.info("Position probe failed: %s", exc)
            return "unavailable"

def position_provider() -> GeoPositionProvider:
    """
    Factory picks the platform source from env flags.
    """
    source: PositionSource | None = None
    if settings.POSITION_PROVIDER == "static":
        if settings.STATIC_LATITUDE is not None and settings.STATIC_LONGITUDE is not None:
            source = StaticPositionSource(settings.STATIC_LATITUDE, settings.STATIC_LONGITUDE)
    elif settings.POSITION_PROVIDER == "ip":
        source = IpPositionSource()
    return GeoPositionProvider(source)
