import json
import os
from pathlib import Path
from typing import Optional
from .base import KeyValueStorage
from ..core.config import settings
from ..core.errors import PersistenceError

class MemoryStorage(KeyValueStorage):
    """
    Process-local storage; nothing survives a restart.
    """
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

class JsonFileStorage(KeyValueStorage):
    """
    All keys in one JSON object on disk, rewritten through a temp file.
    """
    def __init__(self, path: Path | str | None = None):
        self.path = Path(path or settings.LOCATION_STORE_PATH).expanduser()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"cannot write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
