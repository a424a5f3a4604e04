import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from ..core.cache import GeocodeCache
from ..core.config import settings
from ..core.errors import GeocodeError, NetworkFailure
from ..core.metrics import GEOCODE_ATTEMPTS, GEOCODE_CACHE, GEOCODE_DEGRADED
from ..data.base import GeocodeProvider, ResolvedAddress, AutocompleteResult
from ..data.geocode_client import geocode_strategies

log = logging.getLogger(__name__)

T = TypeVar("T")

MIN_QUERY_LENGTH = 2

@dataclass
class Outcome(Generic[T]):
    """Result of one strategy attempt: a value, or the error that stopped it."""
    strategy: str
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

class GeocodeResolver:
    """
    Coordinates/place ids/queries → addresses, over an ordered strategy chain.

    Each strategy is tried in order until one succeeds. Total failure never
    raises: reverse_geocode and lookup_details return the degraded
    "Location unavailable" address, search returns [].
    Successful reverse lookups are written through to the GeocodeCache.
    """
    def __init__(
        self,
        strategies: List[GeocodeProvider] | None = None,
        cache: GeocodeCache | None = None,
        timeout: float | None = None,
    ):
        self.strategies = strategies if strategies is not None else geocode_strategies()
        self.cache = cache if cache is not None else GeocodeCache()
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    async def attempt(self, op: str, strategy: GeocodeProvider,
                      call: Callable[[], Awaitable[T]]) -> Outcome[T]:
        name = getattr(strategy, "name", type(strategy).__name__)
        try:
            value = await asyncio.wait_for(call(), timeout=self.timeout)
        except asyncio.TimeoutError:
            err: Exception = NetworkFailure(f"{name} timed out after {self.timeout}s")
            log.warning("%s via %s failed: %s", op, name, err)
        except GeocodeError as exc:
            err = exc
            log.warning("%s via %s failed: %s", op, name, err)
        except Exception as exc:
            err = exc
            log.exception("%s via %s raised unexpectedly", op, name)
        else:
            GEOCODE_ATTEMPTS.labels(op=op, strategy=name, outcome="ok").inc()
            return Outcome(strategy=name, value=value)
        GEOCODE_ATTEMPTS.labels(op=op, strategy=name, outcome="error").inc()
        return Outcome(strategy=name, error=err)

    async def _first_success(self, op: str, make_call: Callable[[GeocodeProvider], Callable[[], Awaitable[Any]]]) -> Optional[Outcome]:
        for strategy in self.strategies:
            outcome = await self.attempt(op, strategy, make_call(strategy))
            if outcome.ok:
                return outcome
        GEOCODE_DEGRADED.labels(op=op).inc()
        return None

    async def reverse_geocode(self, lat: float, lng: float) -> ResolvedAddress:
        cached = self.cache.get(lat, lng)
        if cached is not None:
            GEOCODE_CACHE.labels(result="hit").inc()
            return cached
        GEOCODE_CACHE.labels(result="miss").inc()

        outcome = await self._first_success("reverse", lambda s: lambda: s.reverse(lat, lng))
        if outcome is None:
            log.error("Reverse geocoding failed for %.4f,%.4f on every strategy", lat, lng)
            return ResolvedAddress.degraded(lat, lng)
        self.cache.put(lat, lng, outcome.value)
        return outcome.value

    async def search(self, query: str) -> List[AutocompleteResult]:
        q = (query or "").strip()
        if len(q) < MIN_QUERY_LENGTH:
            return []
        outcome = await self._first_success("search", lambda s: lambda: s.autocomplete(q))
        return outcome.value if outcome else []

    async def lookup_details(self, place_id: str) -> ResolvedAddress:
        # Place ids are provider-specific, not coordinate-keyed: no cache here
        outcome = await self._first_success("details", lambda s: lambda: s.details(place_id))
        if outcome is None:
            return ResolvedAddress.degraded()
        return outcome.value
