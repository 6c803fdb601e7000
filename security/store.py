"""
Process-local key/value store used for OTP challenges and failed-login windows.

Flows only rely on get/set/delete/prune plus ``lock(key)`` for per-key mutual
exclusion, so a shared cache can replace MemoryStore when the service runs on
more than one instance.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Protocol

DEFAULT_LOCK_STRIPES = 64


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def prune(self, predicate: Callable[[str, Any], bool]) -> int: ...

    def lock(self, key: str): ...


class MemoryStore:
    """
    Dict-backed store. Per-key locks come from a fixed pool of stripes, so
    locking arbitrary keys never grows memory and a key always maps to the
    same lock for the life of the store.
    """

    def __init__(self, lock_stripes: int = DEFAULT_LOCK_STRIPES) -> None:
        self._data: Dict[str, Any] = {}
        self._guard = threading.Lock()
        self._stripes = tuple(threading.RLock() for _ in range(lock_stripes))

    def get(self, key: str) -> Optional[Any]:
        with self._guard:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._guard:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._guard:
            self._data.pop(key, None)

    def prune(self, predicate: Callable[[str, Any], bool]) -> int:
        """Remove every entry for which predicate(key, value) is true."""
        with self._guard:
            doomed = [k for k, v in self._data.items() if predicate(k, v)]
            for key in doomed:
                del self._data[key]
        return len(doomed)

    def keys(self) -> List[str]:
        with self._guard:
            return list(self._data.keys())

    def __len__(self) -> int:
        with self._guard:
            return len(self._data)

    @property
    def lock_count(self) -> int:
        return len(self._stripes)

    def _lock_for(self, key: str) -> threading.RLock:
        return self._stripes[hash(key) % len(self._stripes)]

    @contextmanager
    def lock(self, key: str):
        # locks are held for one key at a time, never nested across keys
        with self._lock_for(key):
            yield
