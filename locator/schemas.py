from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    # Wire format is camelCase; Python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class CoordinatesModel(CamelModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = None

class ReverseGeocodeRequest(CamelModel):
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

class AddressResponse(CamelModel):
    city: str
    state: str
    country: str
    postal_code: str | None = None
    formatted_address: str
    coordinates: CoordinatesModel | None = None

class SearchResult(CamelModel):
    place_id: str
    description: str
    main_text: str
    secondary_text: str
    city: str | None = None
    state: str | None = None
    country: str | None = None
    coordinates: CoordinatesModel | None = None

class ServiceabilityRequest(CamelModel):
    city: str = ""
    state: str = ""
    coordinates: CoordinatesModel | None = None

class ServiceabilityResponse(CamelModel):
    is_serviceable: bool
    message: str
    estimated_delivery_time: str | None = None
