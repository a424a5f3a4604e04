from enum import Enum
from typing import Protocol, List, Optional
from dataclasses import dataclass, replace

# ----- Data shapes (thin & explicit) -----
# Storage and wire form is camelCase JSON; to_dict/from_dict translate.

UNAVAILABLE_ADDRESS = "Location unavailable"
UNKNOWN = "Unknown"

@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None   # metres, when the platform reports it

    def to_dict(self) -> dict:
        out = {"latitude": self.latitude, "longitude": self.longitude}
        if self.accuracy is not None:
            out["accuracy"] = self.accuracy
        return out

    @classmethod
    def from_dict(cls, d: dict | None) -> Optional["Coordinate"]:
        if not d or d.get("latitude") is None or d.get("longitude") is None:
            return None
        acc = d.get("accuracy")
        return cls(float(d["latitude"]), float(d["longitude"]), float(acc) if acc is not None else None)

@dataclass
class ResolvedAddress:
    city: str                          # may be "" when the provider has no locality
    state: str
    country: str
    postal_code: Optional[str] = None
    formatted_address: str = ""
    coordinates: Optional[Coordinate] = None

    @classmethod
    def degraded(cls, lat: float | None = None, lng: float | None = None) -> "ResolvedAddress":
        coords = Coordinate(lat, lng) if lat is not None and lng is not None else None
        return cls(
            city=UNKNOWN, state=UNKNOWN, country=UNKNOWN,
            postal_code=None, formatted_address=UNAVAILABLE_ADDRESS, coordinates=coords,
        )

    @property
    def is_degraded(self) -> bool:
        return self.formatted_address == UNAVAILABLE_ADDRESS

    @property
    def display_address(self) -> str:
        return self.formatted_address or ", ".join(p for p in (self.city, self.state, self.country) if p)

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postalCode": self.postal_code,
            "formattedAddress": self.formatted_address,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ResolvedAddress":
        return cls(
            city=d.get("city") or "",
            state=d.get("state") or "",
            country=d.get("country") or "",
            postal_code=d.get("postalCode") or None,
            formatted_address=d.get("formattedAddress") or "",
            coordinates=Coordinate.from_dict(d.get("coordinates")),
        )

class LocationSource(str, Enum):
    GPS = "gps"
    MANUAL = "manual"
    DEFAULT = "default"

@dataclass
class LocationRecord:
    address: ResolvedAddress
    timestamp: int                     # epoch millis
    source: LocationSource = LocationSource.MANUAL
    is_default: bool = False

    @property
    def city(self) -> str:
        return self.address.city

    @property
    def state(self) -> str:
        return self.address.state

    def same_place(self, other: "LocationRecord") -> bool:
        return (self.city.casefold(), self.state.casefold()) == (other.city.casefold(), other.state.casefold())

    def touched(self, timestamp: int) -> "LocationRecord":
        return replace(self, timestamp=timestamp)

    def to_dict(self) -> dict:
        return {
            **self.address.to_dict(),
            "timestamp": self.timestamp,
            "source": self.source.value,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "LocationRecord":
        return cls(
            address=ResolvedAddress.from_dict(d),
            timestamp=int(d["timestamp"]),
            source=LocationSource(d.get("source") or LocationSource.MANUAL.value),
            is_default=bool(d.get("isDefault", False)),
        )

@dataclass
class AutocompleteResult:
    place_id: str
    description: str
    main_text: str = ""
    secondary_text: str = ""
    # Directory-backed results carry the address inline
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinate] = None

    def as_address(self) -> ResolvedAddress:
        return ResolvedAddress(
            city=self.city or self.main_text,
            state=self.state or "",
            country=self.country or "",
            formatted_address=self.description,
            coordinates=self.coordinates,
        )

    def to_dict(self) -> dict:
        out = {
            "placeId": self.place_id,
            "description": self.description,
            "mainText": self.main_text,
            "secondaryText": self.secondary_text,
        }
        if self.city is not None:
            out.update(city=self.city, state=self.state, country=self.country)
        if self.coordinates is not None:
            out["coordinates"] = self.coordinates.to_dict()
        return out

    @classmethod
    def from_dict(cls, d: dict) -> "AutocompleteResult":
        return cls(
            place_id=d["placeId"],
            description=d.get("description", ""),
            main_text=d.get("mainText", ""),
            secondary_text=d.get("secondaryText", ""),
            city=d.get("city"),
            state=d.get("state"),
            country=d.get("country"),
            coordinates=Coordinate.from_dict(d.get("coordinates")),
        )

@dataclass
class ServiceabilityResult:
    is_serviceable: bool
    message: str
    estimated_delivery_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "isServiceable": self.is_serviceable,
            "message": self.message,
            "estimatedDeliveryTime": self.estimated_delivery_time,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ServiceabilityResult":
        return cls(
            is_serviceable=bool(d["isServiceable"]),
            message=d.get("message") or "",
            estimated_delivery_time=d.get("estimatedDeliveryTime"),
        )

@dataclass(frozen=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout_ms: int = 10_000
    max_age_ms: int = 5 * 60 * 1000

@dataclass
class LocationEvent:
    kind: str                          # "changed" | "cleared"
    record: Optional[LocationRecord] = None

# ----- Protocols (interfaces) -----

class PositionSource(Protocol):
    """Platform location capability; raises GeoError subclasses."""
    async def current_position(self, high_accuracy: bool) -> Coordinate: ...

class GeocodeProvider(Protocol):
    """One resolver strategy; raises GeocodeError subclasses on failure."""
    name: str
    async def reverse(self, lat: float, lng: float) -> ResolvedAddress: ...
    async def autocomplete(self, query: str) -> List[AutocompleteResult]: ...
    async def details(self, place_id: str) -> ResolvedAddress: ...

class ZoneClient(Protocol):
    async def check(self, city: str, state: str, coordinates: Optional[Coordinate]) -> ServiceabilityResult: ...

class KeyValueStorage(Protocol):
    """Durable string store; raises PersistenceError."""
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...

