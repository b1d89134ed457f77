"""Shared key-value store for one task set run.

Steps and the invoking command exchange values through it (a mount point
to check, the status that was found). All host threads of a run share one
store, so every access takes the lock.
"""

import threading
from typing import Any, Dict, List, Optional, Type, TypeVar

from ..exceptions import StoreKeyError, StoreTypeError


T = TypeVar("T")

_MISSING = object()


class SharedStore:
    """Thread-safe mapping with typed reads."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = dict(initial or {})

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str, expected_type: Optional[Type[T]] = None, default: Any = _MISSING) -> Any:
        """
        Read a value.

        Args:
            key: Store key
            expected_type: If given, the value must be an instance of it
            default: Returned when the key is absent (otherwise StoreKeyError)

        Raises:
            StoreKeyError: Key absent and no default given
            StoreTypeError: Value present but of another type
        """
        with self._lock:
            if key not in self._data:
                if default is _MISSING:
                    raise StoreKeyError(key)
                return default
            value = self._data[key]

        if expected_type is not None and not isinstance(value, expected_type):
            raise StoreTypeError(key, expected_type, type(value))
        return value

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current contents."""
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
