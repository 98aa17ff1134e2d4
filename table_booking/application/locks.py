# table_booking/application/locks.py

import threading
from contextlib import contextmanager
from typing import Iterator


class _EventLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class EventLockRegistry:
    """
    One mutex per event id.

    Every check-then-write sequence on an event's seats and bookings runs
    while holding that event's mutex, commit included. Entries exist only
    while some thread holds or waits for them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, _EventLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, event_id: str) -> _EventLock:
        with self._guard:
            entry = self._locks.get(event_id)
            if entry is None:
                entry = _EventLock()
                self._locks[event_id] = entry
            entry.holders += 1
            return entry

    def _checkin(self, event_id: str, entry: _EventLock) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[event_id]

    @contextmanager
    def hold(self, event_id: str) -> Iterator[None]:
        entry = self._checkout(event_id)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(event_id, entry)
