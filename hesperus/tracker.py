"""Last-seen tracking for matched beacons."""

from __future__ import annotations

import threading

STALE_WINDOW = 300.0  # seconds a sighting keeps counting as activity


class ActivityTracker:
    """Map of beacon UUID -> last-seen timestamp.

    Sightings arrive from scanner callbacks while sweeps run on the evaluation
    ticker, so every access goes through one lock.
    """

    def __init__(self) -> None:
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def record_sighting(self, uuid: str, timestamp: float) -> bool:
        """Upsert a sighting. Returns True if the UUID was not being tracked."""
        with self._lock:
            is_new = uuid not in self._last_seen
            self._last_seen[uuid] = timestamp
        return is_new

    def sweep(self, now: float, stale_window: float = STALE_WINDOW) -> tuple[bool, set[str]]:
        """Drop stale entries. Returns (any entry still active, removed UUIDs)."""
        with self._lock:
            active = False
            stale: set[str] = set()
            for uuid, last_seen in self._last_seen.items():
                if now - last_seen >= stale_window:
                    stale.add(uuid)
                else:
                    active = True
            for uuid in stale:
                del self._last_seen[uuid]
        return active, stale

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            return dict(self._last_seen)

    def __contains__(self, uuid: object) -> bool:
        with self._lock:
            return uuid in self._last_seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_seen)
