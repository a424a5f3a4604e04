import json
import logging
import threading
from typing import Callable, List, Optional

from ..core.config import settings
from ..core.errors import PersistenceError
from ..core.utils import now_ms
from ..data.base import KeyValueStorage, LocationEvent, LocationRecord
from ..data.storage import JsonFileStorage

log = logging.getLogger(__name__)

CURRENT_KEY = "userLocation"
RECENT_KEY = "recentLocations"
DAY_MS = 24 * 60 * 60 * 1000

Listener = Callable[[LocationEvent], None]

class LocationStore:
    """
    Where the user is: one current LocationRecord plus a short, deduplicated
    most-recent-first list, mirrored to durable storage.

    Storage failures are logged and skipped; the in-memory mirror still
    updates so the session keeps working.
    """
    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        clock: Callable[[], int] = now_ms,
        retention_days: int | None = None,
        recent_limit: int | None = None,
        recent_shown: int | None = None,
    ):
        self.storage = storage if storage is not None else JsonFileStorage()
        self.clock = clock
        self.retention_ms = (retention_days or settings.LOCATION_RETENTION_DAYS) * DAY_MS
        self.recent_limit = recent_limit or settings.RECENT_LOCATIONS_LIMIT
        self.recent_shown = recent_shown or settings.RECENT_LOCATIONS_SHOWN
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._current: Optional[LocationRecord] = None
        self._recent: List[LocationRecord] = []
        self._hydrate()

    # ----- persistence helpers -----

    def _read(self, key: str):
        try:
            raw = self.storage.get(key)
        except PersistenceError as exc:
            log.warning("Location storage read failed (%s): %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("Discarding unreadable %s entry", key)
            return None

    def _write(self, key: str, value) -> None:
        try:
            self.storage.set(key, json.dumps(value, separators=(",", ":")))
        except PersistenceError as exc:
            log.warning("Location storage write failed (%s): %s", key, exc)

    def _remove(self, key: str) -> None:
        try:
            self.storage.remove(key)
        except PersistenceError as exc:
            log.warning("Location storage remove failed (%s): %s", key, exc)

    def _hydrate(self) -> None:
        current = self._read(CURRENT_KEY)
        if isinstance(current, dict):
            self._current = _parse(current)
        recent = self._read(RECENT_KEY)
        if isinstance(recent, list):
            self._recent = [r for r in (_parse(d) for d in recent if isinstance(d, dict)) if r]

    # ----- operations -----

    def save(self, record: LocationRecord) -> None:
        with self._lock:
            self._current = record
            self._recent = [record] + [r for r in self._recent if not r.same_place(record)]
            del self._recent[self.recent_limit:]
            self._write(CURRENT_KEY, record.to_dict())
            self._write(RECENT_KEY, [r.to_dict() for r in self._recent])
        self._emit(LocationEvent("changed", record))

    def load(self) -> Optional[LocationRecord]:
        with self._lock:
            stored = self._read(CURRENT_KEY)
            record = _parse(stored) if isinstance(stored, dict) else self._current
            if record is None:
                return None
            if self.clock() - record.timestamp > self.retention_ms:
                log.info("Dropping saved location older than %d days", self.retention_ms // DAY_MS)
                self._current = None
                self._remove(CURRENT_KEY)
                return None
            self._current = record
            return record

    def clear(self) -> None:
        with self._lock:
            self._current = None
            self._remove(CURRENT_KEY)
        self._emit(LocationEvent("cleared"))

    def recent(self) -> List[LocationRecord]:
        with self._lock:
            return list(self._recent[:self.recent_shown])

    # ----- change notification -----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for changed/cleared events; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, event: LocationEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                log.exception("Location listener failed on %s event", event.kind)

def _parse(d: dict) -> Optional[LocationRecord]:
    try:
        return LocationRecord.from_dict(d)
    except (KeyError, TypeError, ValueError):
        log.warning("Ignoring malformed stored location")
        return None
