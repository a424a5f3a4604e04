import asyncio
import logging
from dataclasses import replace

from ..core.config import settings
from ..core.metrics import SERVICEABILITY_FALLBACKS
from ..data.base import LocationRecord, ServiceabilityResult, ZoneClient
from ..data.zone_client import zone_client

log = logging.getLogger(__name__)

FALLBACK_MESSAGE = "We couldn't confirm delivery to this location right now. Please try again shortly."
EXPANSION_MESSAGE = "We don't deliver here yet, but we're expanding to new cities soon."

class ServiceabilityChecker:
    """
    Asks the delivery-zone collaborator whether a location can be served.
    Always answers: a failed lookup becomes a not-serviceable verdict.
    Nothing is memoized; callers re-check on every location change.
    """
    def __init__(self, zones: ZoneClient | None = None, timeout: float | None = None):
        self.zones = zones if zones is not None else zone_client()
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def check(self, location: LocationRecord) -> ServiceabilityResult:
        addr = location.address
        try:
            result = await asyncio.wait_for(
                self.zones.check(addr.city, addr.state, addr.coordinates), timeout=self.timeout
            )
        except Exception as exc:  # any collaborator failure becomes the fallback verdict
            SERVICEABILITY_FALLBACKS.inc()
            log.warning("Serviceability check for %r failed: %r", addr.city, exc)
            return ServiceabilityResult(is_serviceable=False, message=FALLBACK_MESSAGE)

        if not result.is_serviceable and not result.message:
            result = replace(result, message=EXPANSION_MESSAGE)
        return result
