import httpx
import pytest

from locator.core.errors import ServiceabilityError
from locator.data.base import ServiceabilityResult
from locator.data.zone_client import HttpZoneClient, LocalZoneClient
from locator.services.serviceability import EXPANSION_MESSAGE, FALLBACK_MESSAGE, ServiceabilityChecker

from .conftest import StubZones, make_record


@pytest.mark.asyncio
async def test_collaborator_verdict_passed_through() -> None:
    zones = StubZones()
    checker = ServiceabilityChecker(zones)

    result = await checker.check(make_record())

    assert result == ServiceabilityResult(True, "Delivery available", "2-3 days")
    assert zones.calls[0][:2] == ("Mumbai", "Maharashtra")


@pytest.mark.asyncio
async def test_collaborator_failure_becomes_unserviceable() -> None:
    checker = ServiceabilityChecker(StubZones(error=ServiceabilityError("502")))

    result = await checker.check(make_record())

    assert result.is_serviceable is False
    assert result.message == FALLBACK_MESSAGE
    assert result.estimated_delivery_time is None


@pytest.mark.asyncio
async def test_slow_collaborator_times_out_to_fallback() -> None:
    checker = ServiceabilityChecker(StubZones(delay=0.5), timeout=0.02)

    result = await checker.check(make_record())

    assert result.is_serviceable is False
    assert result.message == FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_zone_message_kept_verbatim_or_generic_when_blank() -> None:
    with_copy = ServiceabilityChecker(StubZones(result=ServiceabilityResult(False, "Coming to Nagpur in May")))
    blank = ServiceabilityChecker(StubZones(result=ServiceabilityResult(False, "")))

    assert (await with_copy.check(make_record("Nagpur"))).message == "Coming to Nagpur in May"
    assert (await blank.check(make_record("Nagpur"))).message == EXPANSION_MESSAGE


@pytest.mark.asyncio
async def test_every_check_hits_the_collaborator() -> None:
    zones = StubZones()
    checker = ServiceabilityChecker(zones)

    await checker.check(make_record("Mumbai"))
    await checker.check(make_record("Pune"))
    await checker.check(make_record("Mumbai"))

    assert [c[0] for c in zones.calls] == ["Mumbai", "Pune", "Mumbai"]


class TestLocalZoneClient:
    @pytest.mark.asyncio
    async def test_listed_city_is_serviceable(self) -> None:
        result = await LocalZoneClient(["Mumbai", "Delhi"]).check("Navi Mumbai", "MH", None)

        assert result.is_serviceable
        assert result.estimated_delivery_time == "2-4 hours"

    @pytest.mark.asyncio
    async def test_other_city_is_not(self) -> None:
        result = await LocalZoneClient(["Mumbai", "Delhi"]).check("Nagpur", "Maharashtra", None)

        assert not result.is_serviceable
        assert result.message == "Delivery not available in your area yet"


class TestHttpZoneClient:
    @pytest.mark.asyncio
    async def test_posts_city_state_and_coordinates(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={
                "isServiceable": True, "message": "Delivery available", "estimatedDeliveryTime": "2-3 days",
            })

        client = HttpZoneClient("http://zones.test", transport=httpx.MockTransport(handler))
        record = make_record()
        result = await client.check(record.city, record.state, record.address.coordinates)

        assert seen["path"] == "/api/location/check-serviceable"
        assert b"Mumbai" in seen["body"]
        assert result.estimated_delivery_time == "2-3 days"

    @pytest.mark.asyncio
    async def test_server_error_raises_serviceability_error(self) -> None:
        client = HttpZoneClient("http://zones.test", transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        with pytest.raises(ServiceabilityError):
            await client.check("Mumbai", "MH", None)


@pytest.mark.asyncio
async def test_blank_message_does_not_mutate_collaborator_result() -> None:
    shared = ServiceabilityResult(False, "")
    checker = ServiceabilityChecker(StubZones(result=shared))

    result = await checker.check(make_record("Nagpur"))

    assert result.message == EXPANSION_MESSAGE
    assert shared.message == ""
