from typing import List
from urllib.parse import quote
from .base import GeocodeProvider, ResolvedAddress, AutocompleteResult, Coordinate
from .cities import CITIES, COUNTRY, NEAREST_CITY_RADIUS_KM, SEARCH_LIMIT, POPULAR_LIMIT
from ..core.config import settings
from ..core.errors import ProviderFailure, NetworkFailure
from ..core.utils import haversine_km, normalize_query, place_slug
import httpx

# Address component → field, in preference order; first match wins.
CITY_TYPES = ("locality", "administrative_area_level_2")
STATE_TYPES = ("administrative_area_level_1",)
COUNTRY_TYPES = ("country",)
POSTAL_TYPES = ("postal_code",)

def _component(components: list[dict], types: tuple[str, ...], form: str = "long_name") -> str:
    for wanted in types:
        for comp in components:
            if wanted in comp.get("types", ()):
                return comp.get(form) or ""
    return ""

def parse_google_result(result: dict) -> ResolvedAddress:
    """
    Map one Google geocode/place result onto a ResolvedAddress.
    Missing components leave the field as "" (a valid state, not an error).
    """
    try:
        components = result.get("address_components") or []
        loc = (result.get("geometry") or {}).get("location")
        coords = Coordinate(float(loc["lat"]), float(loc["lng"])) if loc else None
        return ResolvedAddress(
            city=_component(components, CITY_TYPES),
            state=_component(components, STATE_TYPES, "short_name"),
            country=_component(components, COUNTRY_TYPES),
            postal_code=_component(components, POSTAL_TYPES) or None,
            formatted_address=result.get("formatted_address") or "",
            coordinates=coords,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ProviderFailure(f"malformed provider result: {exc}") from exc

async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict | list:
    """One HTTP round-trip with transport/status/body errors folded into GeocodeError."""
    try:
        r = await client.request(method, url, **kwargs)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPStatusError as exc:
        raise ProviderFailure(f"{method} {url} -> {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise NetworkFailure(f"{method} {url}: {exc!r}") from exc
    except ValueError as exc:
        raise ProviderFailure(f"{method} {url}: invalid JSON") from exc


def _directory_address(city: str, state: str, lat: float, lng: float) -> ResolvedAddress:
    return ResolvedAddress(
        city=city, state=state, country=COUNTRY,
        formatted_address=f"{city}, {state}, {COUNTRY}",
        coordinates=Coordinate(lat, lng),
    )

class LocalGeocode(GeocodeProvider):
    """
    Resolver over the in-process city directory.
    Deterministic and free of external dependencies; this is what the
    fallback /api/location endpoints serve.
    """
    name = "local"

    async def reverse(self, lat: float, lng: float) -> ResolvedAddress:
        nearest, best_km = None, float("inf")
        for city, state, clat, clng in CITIES:
            d = haversine_km(lat, lng, clat, clng)
            if d < best_km:
                nearest, best_km = (city, state), d
        if nearest and best_km < NEAREST_CITY_RADIUS_KM:
            city, state = nearest
            return ResolvedAddress(
                city=city, state=state, country=COUNTRY,
                formatted_address=f"{city}, {state}, {COUNTRY}",
                coordinates=Coordinate(lat, lng, accuracy=round(best_km * 1000)),
            )
        # Nothing nearby: a generic in-country answer rather than a failure
        return ResolvedAddress(
            city="Unknown City", state="Unknown State", country=COUNTRY,
            formatted_address=f"Location in {COUNTRY}", coordinates=Coordinate(lat, lng),
        )

    async def autocomplete(self, query: str) -> List[AutocompleteResult]:
        q = normalize_query(query)
        if len(q) < 2:
            return []
        out: List[AutocompleteResult] = []
        for city, state, lat, lng in CITIES:
            if q in city.lower() or q in state.lower():
                out.append(AutocompleteResult(
                    place_id=place_slug(city, state),
                    description=f"{city}, {state}, {COUNTRY}",
                    main_text=city,
                    secondary_text=f"{state}, {COUNTRY}",
                    city=city, state=state, country=COUNTRY,
                    coordinates=Coordinate(lat, lng),
                ))
            if len(out) >= SEARCH_LIMIT:
                break
        return out

    async def details(self, place_id: str) -> ResolvedAddress:
        pid = place_id.strip().lower()
        for city, state, lat, lng in CITIES:
            if pid == place_slug(city, state):
                return _directory_address(city, state, lat, lng)
        # Looser match: slug starts with a known city ("mumbai", "mumbai_mh")
        for city, state, lat, lng in CITIES:
            city_slug = place_slug(city, "").rstrip("_")
            if pid == city_slug or pid.startswith(city_slug + "_"):
                return _directory_address(city, state, lat, lng)
        raise ProviderFailure(f"Location not found: {place_id}")

    def popular(self) -> List[ResolvedAddress]:
        return [_directory_address(*row) for row in CITIES[:POPULAR_LIMIT]]

class GoogleGeocode(GeocodeProvider):
    """
    Google Geocoding + Places REST APIs (API-key authenticated).
    Any status other than "OK" (ZERO_RESULTS, OVER_QUERY_LIMIT, REQUEST_DENIED...)
    counts as a provider failure so the next strategy gets a chance.
    """
    name = "google"

    def __init__(self, api_key: str, base_url: str | None = None,
                 timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.base_url = (base_url or settings.GOOGLE_MAPS_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    async def _call(self, path: str, params: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            j = await _send(client, "GET", f"{self.base_url}/{path}", params={**params, "key": self.api_key})
        if not isinstance(j, dict):
            raise ProviderFailure(f"{path}: unexpected payload")
        status = j.get("status")
        if status != "OK":
            raise ProviderFailure(f"{path}: status {status} {j.get('error_message', '')}".strip())
        return j

    async def reverse(self, lat: float, lng: float) -> ResolvedAddress:
        j = await self._call("geocode/json", {"latlng": f"{lat},{lng}"})
        results = j.get("results") or []
        if not results:
            raise ProviderFailure("geocode/json: no results")
        return parse_google_result(results[0])

    async def autocomplete(self, query: str) -> List[AutocompleteResult]:
        j = await self._call("place/autocomplete/json", {"input": query, "types": "(cities)"})
        try:
            return [
                AutocompleteResult(
                    place_id=p["place_id"],
                    description=p.get("description", ""),
                    main_text=p.get("structured_formatting", {}).get("main_text", ""),
                    secondary_text=p.get("structured_formatting", {}).get("secondary_text", ""),
                )
                for p in j.get("predictions", [])
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ProviderFailure(f"malformed prediction: {exc}") from exc

    async def details(self, place_id: str) -> ResolvedAddress:
        j = await self._call("place/details/json", {
            "place_id": place_id,
            "fields": "geometry,formatted_address,address_components",
        })
        return parse_google_result(j.get("result") or {})

class BackendGeocode(GeocodeProvider):
    """
    The storefront backend's /api/location endpoints (see routers/location.py).
    """
    name = "backend"

    def __init__(self, base_url: str, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def reverse(self, lat: float, lng: float) -> ResolvedAddress:
        async with self._client() as client:
            j = await _send(client, "POST", f"{self.base_url}/api/location/reverse-geocode",
                            json={"latitude": lat, "longitude": lng})
        return _address_from_json(j)

    async def autocomplete(self, query: str) -> List[AutocompleteResult]:
        async with self._client() as client:
            items = await _send(client, "GET", f"{self.base_url}/api/location/search", params={"q": query})
        if not isinstance(items, list):
            raise ProviderFailure("search: expected a list")
        try:
            return [AutocompleteResult.from_dict(i) for i in items]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ProviderFailure(f"search: malformed item: {exc}") from exc

    async def details(self, place_id: str) -> ResolvedAddress:
        async with self._client() as client:
            j = await _send(client, "GET", f"{self.base_url}/api/location/details/{quote(place_id, safe='')}")
        return _address_from_json(j)

def _address_from_json(j) -> ResolvedAddress:
    if not isinstance(j, dict):
        raise ProviderFailure("expected an address object")
    try:
        return ResolvedAddress.from_dict(j)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ProviderFailure(f"malformed address: {exc}") from exc

def geocode_strategies() -> list[GeocodeProvider]:
    """
    Factory builds the ordered resolver chain from env flags:
    Google first when keyed, then the backend fallback, else the local directory.
    """
    provider = settings.GEO_PROVIDER
    if provider == "local":
        return [LocalGeocode()]
    chain: list[GeocodeProvider] = []
    if provider in ("auto", "google") and settings.GOOGLE_MAPS_API_KEY:
        chain.append(GoogleGeocode(settings.GOOGLE_MAPS_API_KEY))
    if provider in ("auto", "google", "backend") and settings.LOCATION_BACKEND_URL:
        chain.append(BackendGeocode(settings.LOCATION_BACKEND_URL))
    if not chain:
        chain.append(LocalGeocode())
    return chain
