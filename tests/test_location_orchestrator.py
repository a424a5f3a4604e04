import asyncio

import pytest

from locator.core.errors import PermissionDenied
from locator.data.base import (
    Coordinate, LocationSource, PositionOptions, ResolvedAddress, ServiceabilityResult,
)
from locator.data.position_client import GeoPositionProvider, StaticPositionSource
from locator.services.geocode_resolver import GeocodeResolver
from locator.services.location_orchestrator import LocationOrchestrator, LocationStatus
from locator.services.serviceability import ServiceabilityChecker

from .conftest import StubProvider, StubZones, make_address, make_record, make_suggestion


class GatedSource:
    """Position source that blocks until the test opens the gate."""

    def __init__(self, fix: Coordinate):
        self.fix = fix
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def current_position(self, high_accuracy: bool) -> Coordinate:
        self.entered.set()
        await self.gate.wait()
        return self.fix


class DeniedSource:
    async def current_position(self, high_accuracy: bool) -> Coordinate:
        raise PermissionDenied()


def build(store, clock, geocode_cache, *, source=None, provider=None, zones=None) -> LocationOrchestrator:
    return LocationOrchestrator(
        position=GeoPositionProvider(source or StaticPositionSource(19.0760, 72.8777)),
        resolver=GeocodeResolver(strategies=[provider or StubProvider(address=make_address())],
                                 cache=geocode_cache, timeout=1.0),
        store=store,
        checker=ServiceabilityChecker(zones or StubZones(), timeout=1.0),
        position_options=PositionOptions(timeout_ms=2000, max_age_ms=0),
        clock=clock.ms,
    )


@pytest.mark.asyncio
async def test_detect_current_end_to_end(store, clock, geocode_cache) -> None:
    provider = StubProvider(address=ResolvedAddress(
        city="Mumbai", state="MH", country="India", formatted_address="Mumbai, MH, India",
    ))
    verdict = ServiceabilityResult(True, "Delivery available", "2-3 days")
    orch = build(store, clock, geocode_cache, provider=provider, zones=StubZones(result=verdict))

    state = await orch.detect_current()

    assert state.status is LocationStatus.RESOLVED
    assert not state.is_loading
    assert state.error is None
    assert (state.location.city, state.location.state, state.location.address.country) == ("Mumbai", "MH", "India")
    assert state.location.address.coordinates == Coordinate(19.0760, 72.8777)
    assert state.location.source is LocationSource.GPS
    assert state.serviceability == verdict
    assert state.is_serviceable
    assert store.load() == state.location
    assert orch.display_text() == "Mumbai"
    assert orch.full_address() == "Mumbai, MH, India"


@pytest.mark.asyncio
async def test_permission_denied_keeps_previous_location(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache, source=DeniedSource())
    before = (await orch.select_manual(make_address("Pune", "Maharashtra"))).location

    state = await orch.detect_current()

    assert state.status is LocationStatus.ERROR
    assert "denied" in state.error.lower()
    assert state.location is before
    assert not state.is_loading


@pytest.mark.asyncio
async def test_permission_denied_without_prior_location(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache, source=DeniedSource())

    state = await orch.detect_current()

    assert state.status is LocationStatus.ERROR
    assert state.location is None


@pytest.mark.asyncio
async def test_later_selection_wins_over_in_flight_detection(store, clock, geocode_cache) -> None:
    source = GatedSource(Coordinate(28.7041, 77.1025))
    provider = StubProvider(address=make_address("Delhi", "Delhi"))
    zones = StubZones()
    orch = build(store, clock, geocode_cache, source=source, provider=provider, zones=zones)

    first = asyncio.create_task(orch.detect_current())
    await source.entered.wait()
    assert orch.sequence == 1
    assert orch.get_current_state().is_loading

    second = asyncio.create_task(orch.select_manual(make_address("Bangalore", "Karnataka")))
    await asyncio.sleep(0)
    assert orch.sequence == 2

    source.gate.set()
    await asyncio.gather(first, second)

    state = orch.get_current_state()
    assert state.status is LocationStatus.RESOLVED
    assert state.location.city == "Bangalore"
    assert provider.calls == []                    # stale run stopped before geocoding
    assert [c[0] for c in zones.calls] == ["Bangalore"]
    assert [r.city for r in store.recent()] == ["Bangalore"]


@pytest.mark.asyncio
async def test_clear_discards_in_flight_result(store, clock, geocode_cache) -> None:
    source = GatedSource(Coordinate(28.7041, 77.1025))
    orch = build(store, clock, geocode_cache, source=source)

    task = asyncio.create_task(orch.detect_current())
    await source.entered.wait()
    orch.clear()
    source.gate.set()
    await task

    state = orch.get_current_state()
    assert state.status is LocationStatus.NO_LOCATION
    assert state.location is None
    assert store.load() is None


@pytest.mark.asyncio
async def test_manual_suggestion_resolved_through_place_details(store, clock, geocode_cache) -> None:
    provider = StubProvider(address=make_address("Pune", "Maharashtra"))
    orch = build(store, clock, geocode_cache, provider=provider)

    state = await orch.select_manual(make_suggestion("Pune", "Maharashtra", place_id="ChIJpune"))

    assert provider.calls == [("details", "ChIJpune")]
    assert state.location.city == "Pune"
    assert state.location.source is LocationSource.MANUAL


@pytest.mark.asyncio
async def test_manual_suggestion_without_details_uses_suggestion_text(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache, provider=StubProvider(fail=True))

    state = await orch.select_manual(make_suggestion("Surat", "Gujarat"))

    assert state.status is LocationStatus.RESOLVED
    assert state.location.city == "Surat"
    assert state.location.address.formatted_address == "Surat, Gujarat, India"


@pytest.mark.asyncio
async def test_unresolvable_position_still_resolves_with_placeholder(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache, provider=StubProvider(fail=True))

    state = await orch.detect_current()

    assert state.status is LocationStatus.RESOLVED
    assert state.location.address.formatted_address == "Location unavailable"


@pytest.mark.asyncio
async def test_error_clears_on_next_action(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache, source=DeniedSource())
    await orch.detect_current()

    state = await orch.select_manual(make_record("Jaipur", "Rajasthan"))

    assert state.status is LocationStatus.RESOLVED
    assert state.error is None
    assert state.location.city == "Jaipur"


@pytest.mark.asyncio
async def test_serviceability_rechecked_for_each_location(store, clock, geocode_cache) -> None:
    zones = StubZones()
    orch = build(store, clock, geocode_cache, zones=zones)

    await orch.select_manual(make_address("Mumbai", "Maharashtra"))
    zones.result = ServiceabilityResult(False, "Not yet")
    state = await orch.select_manual(make_address("Nagpur", "Maharashtra"))

    assert [c[0] for c in zones.calls] == ["Mumbai", "Nagpur"]
    assert state.serviceability.message == "Not yet"
    assert not state.is_serviceable


@pytest.mark.asyncio
async def test_clear_resets_to_no_location_but_keeps_recent(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache)
    await orch.detect_current()

    state = orch.clear()

    assert state.status is LocationStatus.NO_LOCATION
    assert state.serviceability is None
    assert orch.display_text() == "Select Location"
    assert orch.full_address() == ""
    assert [r.city for r in orch.recent()] == ["Mumbai"]


@pytest.mark.asyncio
async def test_restore_seeds_state_from_saved_location(store, clock, geocode_cache) -> None:
    store.save(make_record("Chennai", "Tamil Nadu"))
    zones = StubZones()
    orch = build(store, clock, geocode_cache, zones=zones)

    state = await orch.restore()

    assert state.status is LocationStatus.RESOLVED
    assert state.location.city == "Chennai"
    assert zones.calls[0][0] == "Chennai"


@pytest.mark.asyncio
async def test_restore_with_nothing_saved(store, clock, geocode_cache) -> None:
    orch = build(store, clock, geocode_cache)

    state = await orch.restore()

    assert state.status is LocationStatus.NO_LOCATION


@pytest.mark.asyncio
async def test_subscribers_hear_changes(store, clock, geocode_cache) -> None:
    events = []
    orch = build(store, clock, geocode_cache)
    orch.subscribe(events.append)

    await orch.detect_current()
    orch.clear()

    assert [e.kind for e in events] == ["changed", "cleared"]


@pytest.mark.asyncio
async def test_search_delegates_to_resolver(store, clock, geocode_cache) -> None:
    provider = StubProvider(suggestions=[make_suggestion()])
    orch = build(store, clock, geocode_cache, provider=provider)

    assert await orch.search("p") == []
    assert (await orch.search("pu"))[0].main_text == "Pune"
