import httpx
import pytest
from fastapi.testclient import TestClient

from locator.core.config import settings
from locator.data.geocode_client import BackendGeocode
from locator.main import create_app
from locator.services.geocode_resolver import GeocodeResolver


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def test_health_carries_request_id(client: TestClient) -> None:
    response = client.get("/api/health", headers={"x-request-id": "abc-123"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-Id"] == "abc-123"


def test_search_short_query_is_empty(client: TestClient) -> None:
    response = client.get("/api/location/search", params={"q": "m"})

    assert response.status_code == 200
    assert response.json() == []


def test_search_returns_camel_case_suggestions(client: TestClient) -> None:
    response = client.get("/api/location/search", params={"q": "mum"})

    body = response.json()
    assert response.status_code == 200
    assert body[0]["placeId"] == "mumbai_maharashtra"
    assert body[0]["mainText"] == "Mumbai"
    assert body[0]["secondaryText"] == "Maharashtra, India"
    assert body[0]["coordinates"]["latitude"] == pytest.approx(19.076)


def test_reverse_geocode_requires_coordinates(client: TestClient) -> None:
    response = client.post("/api/location/reverse-geocode", json={"latitude": 19.0})

    assert response.status_code == 400


def test_reverse_geocode_nearest_city(client: TestClient) -> None:
    response = client.post("/api/location/reverse-geocode", json={"latitude": 12.98, "longitude": 77.60})

    body = response.json()
    assert body["city"] == "Bangalore"
    assert body["formattedAddress"] == "Bangalore, Karnataka, India"


def test_details_known_and_unknown(client: TestClient) -> None:
    ok = client.get("/api/location/details/hyderabad_telangana")
    missing = client.get("/api/location/details/atlantis")

    assert ok.status_code == 200
    assert ok.json()["state"] == "Telangana"
    assert missing.status_code == 404


def test_popular_cities(client: TestClient) -> None:
    body = client.get("/api/location/popular").json()

    assert len(body) == 20
    assert body[0]["city"] == "Mumbai"


def test_check_serviceable(client: TestClient) -> None:
    yes = client.post("/api/location/check-serviceable", json={
        "city": "Mumbai", "state": "Maharashtra", "coordinates": {"latitude": 19.076, "longitude": 72.8777},
    }).json()
    no = client.post("/api/location/check-serviceable", json={"city": "Varanasi", "state": "Uttar Pradesh"}).json()

    assert yes == {"isServiceable": True, "message": "Delivery available in your area", "estimatedDeliveryTime": "2-4 hours"}
    assert no["isServiceable"] is False
    assert no["estimatedDeliveryTime"] is None


def test_api_key_enforced_when_configured(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "API_KEY", "s3cret")

    assert client.get("/api/location/popular").status_code == 401
    assert client.get("/api/location/popular", headers={"x-api-key": "s3cret"}).status_code == 200


@pytest.mark.asyncio
async def test_backend_strategy_against_live_app(app, geocode_cache) -> None:
    backend = BackendGeocode("http://testserver", transport=httpx.ASGITransport(app=app))
    resolver = GeocodeResolver(strategies=[backend], cache=geocode_cache)

    addr = await resolver.reverse_geocode(22.5726, 88.3639)
    suggestions = await resolver.search("jai")
    details = await resolver.lookup_details(suggestions[0].place_id)

    assert addr.city == "Kolkata"
    assert suggestions[0].city == "Jaipur"
    assert details.state == "Rajasthan"
