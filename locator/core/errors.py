"""
Error taxonomy for location resolution.

Only GeoError reaches the caller as a failure; the other families are
recovered inside the component that raised them.
"""

class GeoError(Exception):
    """Position could not be acquired from the platform."""
    default_message = "Unable to get current location"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

class PermissionDenied(GeoError):
    default_message = "Location access denied by user. Check permissions and retry."

class PositionUnavailable(GeoError):
    default_message = "Location information unavailable"

class PositionTimeout(GeoError):
    default_message = "Location request timed out"

class Unsupported(GeoError):
    default_message = "Geolocation is not supported on this platform"


class GeocodeError(Exception):
    """A geocoding strategy failed; the resolver degrades instead of raising."""

class ProviderFailure(GeocodeError):
    """Provider answered but with an error status, quota or malformed body."""

class NetworkFailure(GeocodeError):
    """Provider could not be reached."""


class ServiceabilityError(Exception):
    """Delivery-zone lookup failed."""


class PersistenceError(Exception):
    """Durable storage is unavailable or rejected the write."""
