import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Union

from ..core.config import settings
from ..core.errors import GeoError
from ..core.utils import now_ms
from ..data.base import (
    AutocompleteResult, LocationEvent, LocationRecord, LocationSource,
    PositionOptions, ResolvedAddress, ServiceabilityResult,
)
from ..data.position_client import GeoPositionProvider, position_provider
from .geocode_resolver import GeocodeResolver
from .location_store import LocationStore
from .serviceability import ServiceabilityChecker

log = logging.getLogger(__name__)

SELECT_PROMPT = "Select Location"
GENERIC_FAILURE = "Unable to get current location"

Candidate = Union[AutocompleteResult, ResolvedAddress, LocationRecord]

class LocationStatus(str, Enum):
    NO_LOCATION = "no_location"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    ERROR = "error"

@dataclass
class LocationState:
    status: LocationStatus
    location: Optional[LocationRecord]
    is_loading: bool
    error: Optional[str]
    serviceability: Optional[ServiceabilityResult]

    @property
    def is_serviceable(self) -> bool:
        return bool(self.serviceability and self.serviceability.is_serviceable)

class LocationOrchestrator:
    """
    Orchestrates:
      detect:  position → reverse geocode → persist → serviceability
      manual:  (place details) → persist → serviceability
    and publishes the composite state to the UI.

    Every request takes a sequence number. Runs are queued behind one lock,
    so two resolutions never overlap, and a run that has been superseded by
    a newer request stops at its next step without touching state.
    The location and its verdict are applied together, so a verdict is
    never shown against a different location.
    """
    def __init__(
        self,
        position: GeoPositionProvider | None = None,
        resolver: GeocodeResolver | None = None,
        store: LocationStore | None = None,
        checker: ServiceabilityChecker | None = None,
        position_options: PositionOptions | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.position = position if position is not None else position_provider()
        self.resolver = resolver if resolver is not None else GeocodeResolver()
        self.store = store if store is not None else LocationStore()
        self.checker = checker if checker is not None else ServiceabilityChecker()
        self.position_options = position_options or PositionOptions(
            high_accuracy=True,
            timeout_ms=settings.POSITION_TIMEOUT_MS,
            max_age_ms=settings.POSITION_MAX_AGE_MS,
        )
        self.clock = clock

        self._seq = 0
        self._lock = asyncio.Lock()
        self._status = LocationStatus.NO_LOCATION
        self._location: Optional[LocationRecord] = None
        self._serviceability: Optional[ServiceabilityResult] = None
        self._error: Optional[str] = None

    # ----- state -----

    def get_current_state(self) -> LocationState:
        return LocationState(
            status=self._status,
            location=self._location,
            is_loading=self._status == LocationStatus.RESOLVING,
            error=self._error,
            serviceability=self._serviceability,
        )

    @property
    def sequence(self) -> int:
        return self._seq

    def _begin(self) -> int:
        self._seq += 1
        self._status = LocationStatus.RESOLVING
        self._error = None
        return self._seq

    def _is_latest(self, seq: int) -> bool:
        return seq == self._seq

    def _fail(self, seq: int, message: str) -> None:
        if self._is_latest(seq):
            # previous location (if any) stays visible next to the error
            self._status = LocationStatus.ERROR
            self._error = message

    async def _commit(self, seq: int, record: LocationRecord) -> bool:
        if not self._is_latest(seq):
            return False
        self.store.save(record)
        verdict = await self.checker.check(record)
        if not self._is_latest(seq):
            return False
        self._location = record
        self._serviceability = verdict
        self._status = LocationStatus.RESOLVED
        return True

    # ----- actions -----

    async def detect_current(self) -> LocationState:
        seq = self._begin()
        async with self._lock:
            if not self._is_latest(seq):
                return self.get_current_state()
            try:
                fix = await self.position.acquire(self.position_options)
                if not self._is_latest(seq):
                    return self.get_current_state()
                address = await self.resolver.reverse_geocode(fix.latitude, fix.longitude)
                if not self._is_latest(seq):
                    return self.get_current_state()
                # keep the platform fix (with accuracy) rather than the provider's geometry
                record = LocationRecord(
                    address=replace(address, coordinates=fix),
                    timestamp=self.clock(),
                    source=LocationSource.GPS,
                )
                await self._commit(seq, record)
            except GeoError as exc:
                log.info("Position acquisition failed: %s", exc)
                self._fail(seq, exc.message)
            except Exception:
                log.exception("Location detection failed")
                self._fail(seq, GENERIC_FAILURE)
        return self.get_current_state()

    async def select_manual(self, candidate: Candidate) -> LocationState:
        seq = self._begin()
        async with self._lock:
            if not self._is_latest(seq):
                return self.get_current_state()
            try:
                address = await self._address_for(candidate)
                if not self._is_latest(seq):
                    return self.get_current_state()
                record = LocationRecord(address=address, timestamp=self.clock(), source=LocationSource.MANUAL)
                await self._commit(seq, record)
            except Exception:
                log.exception("Manual location selection failed")
                self._fail(seq, "Unable to use the selected location")
        return self.get_current_state()

    async def _address_for(self, candidate: Candidate) -> ResolvedAddress:
        if isinstance(candidate, LocationRecord):
            return candidate.address
        if isinstance(candidate, ResolvedAddress):
            return candidate
        if candidate.place_id:
            details = await self.resolver.lookup_details(candidate.place_id)
            if not details.is_degraded:
                return details
            log.warning("No details for %s; using the suggestion as selected", candidate.place_id)
        return candidate.as_address()

    async def restore(self) -> LocationState:
        """Seed state from the persisted location and re-check serviceability."""
        record = self.store.load()
        if record is None:
            return self.get_current_state()
        seq = self._begin()
        async with self._lock:
            if self._is_latest(seq):
                verdict = await self.checker.check(record)
                if self._is_latest(seq):
                    self._location = record
                    self._serviceability = verdict
                    self._status = LocationStatus.RESOLVED
        return self.get_current_state()

    def clear(self) -> LocationState:
        self._seq += 1  # anything in flight is now stale
        self.store.clear()
        self._location = None
        self._serviceability = None
        self._error = None
        self._status = LocationStatus.NO_LOCATION
        return self.get_current_state()

    async def search(self, query: str) -> List[AutocompleteResult]:
        return await self.resolver.search(query)

    def recent(self) -> List[LocationRecord]:
        return self.store.recent()

    def subscribe(self, listener: Callable[[LocationEvent], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # ----- display helpers -----

    def display_text(self) -> str:
        if not self._location:
            return SELECT_PROMPT
        return self._location.city or self._location.address.display_address

    def full_address(self) -> str:
        if not self._location:
            return ""
        return self._location.address.display_address
