"""
Process-wide keyed state with atomic per-key updates.

Adaptive weights, adaptation history and program progress are all
read-modify-write. ``update`` runs the modification under a lock owned by
the key, so two mutators for the same athlete never interleave while
different athletes proceed in parallel. ``get`` and ``snapshot`` take no
per-key lock and return whatever was last written.
"""

from collections import defaultdict
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar
import threading


V = TypeVar('V')


class KeyedStateStore(Generic[V]):
    """
    In-memory store of one value per key, guarded by per-key locks.

    Args:
        name: Label used in error messages
    """

    def __init__(self, name: str = "state"):
        self.name = name
        self._values: Dict[str, V] = {}
        self._locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.RLock:
        # defaultdict insertion is not atomic across threads
        with self._guard:
            return self._locks[key]

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the key's lock for a multi-step critical section."""
        lock = self._lock_for(key)
        with lock:
            yield

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        """Last written value for key, without locking."""
        return self._values.get(key, default)

    def snapshot(self, key: str, default: Optional[V] = None) -> Optional[V]:
        """Deep copy of the current value, safe to hand to callers."""
        value = self._values.get(key)
        return deepcopy(value) if value is not None else default

    def put(self, key: str, value: V) -> None:
        with self.locked(key):
            self._values[key] = value

    def update(self, key: str, modify: Callable[[Optional[V]], V]) -> V:
        """
        Atomically replace the value for key with ``modify(current)``.

        ``current`` is None for a key that has never been written. If
        ``modify`` raises, nothing is written.
        """
        with self.locked(key):
            new_value = modify(self._values.get(key))
            self._values[key] = new_value
            return new_value

    def delete(self, key: str) -> Optional[V]:
        with self.locked(key):
            return self._values.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._values)

    def items(self) -> List[tuple]:
        return list(self._values.items())

    def __contains__(self, key: Any) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)
