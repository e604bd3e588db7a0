"""In-process screenshot store, for tests and one-off local runs."""

import threading

from ..exceptions import CacheEntryMissingError
from .base import ScreenshotStore


class MemoryStore(ScreenshotStore):
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self):
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def read(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._objects[key]
            except KeyError:
                raise CacheEntryMissingError(key) from None

    def write(self, key: str, data: bytes) -> None:
        with self._lock:
            self._objects[key] = bytes(data)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)
