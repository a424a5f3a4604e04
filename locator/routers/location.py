from fastapi import APIRouter, Depends, HTTPException, Query
from ..schemas import (
    AddressResponse, ReverseGeocodeRequest, SearchResult,
    ServiceabilityRequest, ServiceabilityResponse,
)
from ..core.errors import ProviderFailure
from ..core.security import require_api_key, rate_limit
from ..data.base import Coordinate
from ..data.geocode_client import LocalGeocode
from ..data.zone_client import LocalZoneClient

router = APIRouter(dependencies=[Depends(require_api_key), Depends(rate_limit)])

# Stateless and cheap; shared across requests.
_directory = LocalGeocode()
_zones = LocalZoneClient()

def directory_dep() -> LocalGeocode:
    return _directory

def zones_dep() -> LocalZoneClient:
    return _zones

@router.get("/search", response_model=list[SearchResult])
async def search_locations(
    q: str = Query(default=""),
    directory: LocalGeocode = Depends(directory_dep),
):
    results = await directory.autocomplete(q)
    return [r.to_dict() for r in results]

@router.post("/reverse-geocode", response_model=AddressResponse)
async def reverse_geocode(
    body: ReverseGeocodeRequest,
    directory: LocalGeocode = Depends(directory_dep),
):
    if body.latitude is None or body.longitude is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")
    address = await directory.reverse(body.latitude, body.longitude)
    return address.to_dict()

@router.get("/details/{place_id}", response_model=AddressResponse)
async def location_details(place_id: str, directory: LocalGeocode = Depends(directory_dep)):
    try:
        address = await directory.details(place_id)
    except ProviderFailure:
        raise HTTPException(status_code=404, detail="Location not found")
    return address.to_dict()

@router.get("/popular", response_model=list[AddressResponse])
async def popular_locations(directory: LocalGeocode = Depends(directory_dep)):
    return [a.to_dict() for a in directory.popular()]

@router.post("/check-serviceable", response_model=ServiceabilityResponse)
async def check_serviceable(
    body: ServiceabilityRequest,
    zones: LocalZoneClient = Depends(zones_dep),
):
    coords = Coordinate(body.coordinates.latitude, body.coordinates.longitude) if body.coordinates else None
    result = await zones.check(body.city, body.state, coords)
    return result.to_dict()
