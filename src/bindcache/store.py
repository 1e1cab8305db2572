"""Backing store contract and an in-process implementation."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, Protocol


class BackingStore(Protocol):
    """What the identity cache needs from a key-value store.

    fetch() must only call compute on a miss. Whether two concurrent misses
    on the same key both run compute is up to the store.
    """

    def get(self, key: str) -> Any:
        ...

    def fetch(self, key: str, options: Dict[str, Any], compute: Callable[[], Any]) -> Any:
        ...

    def write(self, key: str, value: Any, options: Optional[Dict[str, Any]] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStore:
    """
    Dict-backed store for a single process.

    fetch() holds the lock while compute runs, so a key is computed at most
    once at a time. Options are recorded but not enforced: nothing expires.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._options: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Any:
        with self._lock:
            return self._data.get(key)

    def fetch(self, key: str, options: Dict[str, Any], compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
            value = compute()
            self._data[key] = value
            self._options[key] = dict(options or {})
            return value

    def write(self, key: str, value: Any, options: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self._data[key] = value
            self._options[key] = dict(options or {})

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self._options.pop(key, None)

    def options_for(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._options.get(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
