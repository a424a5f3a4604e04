import math
import re
import time

EARTH_RADIUS_KM = 6371.0

def normalize_query(q: str) -> str:
    """
    Minimal normalization so lookups are stable:
    - trim whitespace
    - lowercase
    - collapse multiple spaces
    """
    return " ".join(q.strip().lower().split())

def coordinate_key(lat: float, lng: float, places: int = 4) -> str:
    """
    "lat,lng" rounded to `places` decimals (4 ≈ 11m).
    Adding 0.0 folds -0.0 into 0.0 so both hemispheres' zero share a key.
    """
    return f"{round(lat, places) + 0.0:.{places}f},{round(lng, places) + 0.0:.{places}f}"

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

def place_slug(city: str, state: str) -> str:
    """Stable place id for directory entries, e.g. "navi_mumbai_maharashtra"."""
    return re.sub(r"\s+", "_", f"{city}_{state}").lower()

def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)
