"""Prozessweite Sperren pro Reihe und pro Tisch.

Dispatch, Palettenbuchungen und Callback-Verarbeitung lesen Zählerstände
(belegte Slots, gestartete Rufe) und schreiben danach. Damit zwei parallele
Auslöser nicht dieselbe Palette zweimal vergeben, läuft diese Folge für eine
Reihe immer unter deren Sperre. Reihenfolge bei verschachtelten Sperren:
erst Tisch, dann Reihe.
"""
import threading
from contextlib import contextmanager, nullcontext
from typing import ContextManager, Dict, Hashable, Iterator, Optional


class KeyedLocks:
    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield

    def hold_optional(self, key: Optional[Hashable]) -> ContextManager[None]:
        if key is None:
            return nullcontext()
        return self.hold(key)


ROW_LOCKS = KeyedLocks("row")
TABLE_LOCKS = KeyedLocks("table")
