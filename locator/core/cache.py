import threading
import time
from dataclasses import dataclass
from typing import Any, Callable
from cachetools import FIFOCache, TTLCache
from .config import settings
from .utils import coordinate_key
from ..data.base import ResolvedAddress

# In-process counters for rate limiting; entries only need to outlive a minute bucket.
_local_cache = TTLCache(maxsize=4096, ttl=120)

try:
    import redis  # Optional dependency
except ImportError:
    redis = None

class Cache:
    """
    Thin abstraction over Redis/in-memory so swapping is one flag away.
    """
    def __init__(self):
        self.backend = None
        if settings.USE_REDIS and redis is not None:
            self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    def get(self, key: str) -> Any | None:
        if self.backend:
            return self.backend.get(key)
        return _local_cache.get(key)

    def set(self, key: str, value: str, ttl: int = 120) -> None:
        if self.backend:
            self.backend.setex(key, ttl, value)
        else:
            _local_cache[key] = value

cache = Cache()


@dataclass(frozen=True)
class CacheEntry:
    value: ResolvedAddress
    expires_at: float

class GeocodeCache:
    """
    Reverse-geocode results keyed by coordinates rounded to 4 decimals (~11m).

    Entries expire after `ttl` seconds and are dropped lazily on read.
    At capacity the earliest inserted entry goes first; reads never reorder.
    Every access holds a lock so concurrent get/put on one key never sees a
    half-written entry.
    """
    def __init__(
        self,
        ttl: float | None = None,
        maxsize: int | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl if ttl is not None else settings.GEOCODE_CACHE_TTL_SECONDS
        self._entries: FIFOCache = FIFOCache(maxsize=maxsize or settings.GEOCODE_CACHE_MAXSIZE)
        self._timer = timer
        self._lock = threading.Lock()

    @staticmethod
    def key(lat: float, lng: float) -> str:
        return coordinate_key(lat, lng)

    def get(self, lat: float, lng: float) -> ResolvedAddress | None:
        key = self.key(lat, lng)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._timer():
                del self._entries[key]
                return None
            return entry.value

    def put(self, lat: float, lng: float, address: ResolvedAddress) -> None:
        with self._lock:
            self._entries[self.key(lat, lng)] = CacheEntry(address, self._timer() + self.ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._timer()
            for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
                del self._entries[key]
            return len(self._entries)
