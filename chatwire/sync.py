"""A value guarded by a lock."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class Synced(Generic[T]):
    """Holds a value and serialises access to it through a mutex."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.Lock()

    def run(self, fn: Callable[[T], R]) -> R:
        """Call ``fn`` with the value while holding the lock; return its result."""
        with self._lock:
            return fn(self._value)

    @contextmanager
    def locked(self) -> Iterator[T]:
        """Hold the lock for the duration of the ``with`` block."""
        with self._lock:
            yield self._value

    def get(self) -> T:
        """Return the value, taking the lock only while fetching it."""
        with self._lock:
            return self._value