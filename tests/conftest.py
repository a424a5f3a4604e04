"""Shared pytest fixtures and test doubles for the location pipeline."""

import asyncio

import pytest

from locator.core.cache import GeocodeCache
from locator.core.errors import ProviderFailure
from locator.data.base import (
    AutocompleteResult, Coordinate, LocationRecord, LocationSource,
    ResolvedAddress, ServiceabilityResult,
)
from locator.data.storage import MemoryStorage
from locator.services.location_store import LocationStore

NOW_MS = 1_760_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    """Manually advanced clock; `ms()` for epoch millis, `seconds()` for monotonic timers."""

    def __init__(self, start_ms: int = NOW_MS) -> None:
        self.now = start_ms

    def ms(self) -> int:
        return self.now

    def seconds(self) -> float:
        return self.now / 1000

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class StubProvider:
    """GeocodeProvider double recording every call; `fail=True` raises ProviderFailure."""

    def __init__(self, name="stub", address=None, suggestions=None, fail=False, delay=0.0):
        self.name = name
        self.address = address
        self.suggestions = suggestions or []
        self.fail = fail
        self.delay = delay
        self.calls: list[tuple] = []

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ProviderFailure(f"{self.name} down")

    async def reverse(self, lat, lng):
        self.calls.append(("reverse", lat, lng))
        await self._maybe_fail()
        return self.address

    async def autocomplete(self, query):
        self.calls.append(("autocomplete", query))
        await self._maybe_fail()
        return list(self.suggestions)

    async def details(self, place_id):
        self.calls.append(("details", place_id))
        await self._maybe_fail()
        return self.address


class StubZones:
    """ZoneClient double; returns `result` or raises `error`."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result or ServiceabilityResult(True, "Delivery available", "2-3 days")
        self.error = error
        self.delay = delay
        self.calls: list[tuple] = []

    async def check(self, city, state, coordinates):
        self.calls.append((city, state, coordinates))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


def make_address(city="Mumbai", state="Maharashtra", country="India", lat=19.0760, lng=72.8777):
    return ResolvedAddress(
        city=city,
        state=state,
        country=country,
        formatted_address=f"{city}, {state}, {country}",
        coordinates=Coordinate(lat, lng),
    )


def make_record(city="Mumbai", state="Maharashtra", timestamp=NOW_MS, source=LocationSource.MANUAL):
    return LocationRecord(address=make_address(city, state), timestamp=timestamp, source=source)


def make_suggestion(city="Pune", state="Maharashtra", place_id=None):
    return AutocompleteResult(
        place_id=place_id or f"{city}_{state}".lower(),
        description=f"{city}, {state}, India",
        main_text=city,
        secondary_text=f"{state}, India",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage, clock) -> LocationStore:
    return LocationStore(storage=storage, clock=clock.ms)


@pytest.fixture
def geocode_cache(clock) -> GeocodeCache:
    return GeocodeCache(ttl=1800, maxsize=100, timer=clock.seconds)
