"""Debounced occupancy state machine.

Sightings of watched beacons keep an entry alive in the activity tracker for
``STALE_WINDOW`` seconds. Every evaluation interval the tracker is swept and
the resulting state is queued for reporting, whether or not it changed. The
first sighting of a beacon that is not being tracked queues an ``active``
report straight away instead of waiting for the next tick.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from hesperus.node.decoder import decode_ibeacon
from hesperus.node.registry import BeaconRegistry
from hesperus.tracker import STALE_WINDOW, ActivityTracker

log = logging.getLogger(__name__)


class OccupancyState(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True, slots=True)
class StateReport:
    state: OccupancyState
    last_seen: datetime

    def to_payload(self) -> dict:
        last_seen = self.last_seen.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return {
            "state": self.state.value,
            "attributes": {
                "state": self.state.value,
                "last_seen": last_seen,
            },
        }


class OccupancyMonitor:
    def __init__(
        self,
        registry: BeaconRegistry,
        tracker: ActivityTracker | None = None,
        reports: asyncio.Queue[StateReport] | None = None,
        stale_window: float = STALE_WINDOW,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.tracker = tracker if tracker is not None else ActivityTracker()
        self.reports: asyncio.Queue[StateReport] = reports if reports is not None else asyncio.Queue()
        self.state: OccupancyState | None = None  # None until the first evaluation
        self._stale_window = stale_window
        self._clock = clock
        # Loop that owns the reports queue; scanner backends may call in from other threads.
        self._loop = _running_loop()

    def handle_advertisement(self, data: bytes, rssi: int, now: float | None = None) -> set[str]:
        """Radio path: decode, match and record one advertisement.

        Returns the names of the watches it matched.
        """
        if not data:
            return set()
        decoded = decode_ibeacon(data, rssi)
        if decoded is None:
            return set()
        matched = self.registry.match(decoded)
        if not matched:
            return matched

        if now is None:
            now = self._clock()
        for name in sorted(matched):
            if self.tracker.record_sighting(decoded.uuid, now):
                log.info("discovered new activity for %s: RSSI %d", name, rssi)
                self._queue_report(OccupancyState.ACTIVE, now)
        return matched

    def evaluate(self, now: float | None = None) -> OccupancyState:
        """Sweep stale sightings and queue the resulting state."""
        if now is None:
            now = self._clock()
        active, removed = self.tracker.sweep(now, self._stale_window)
        if removed:
            log.debug("activity expired for %s", ", ".join(sorted(removed)))
        self.state = OccupancyState.ACTIVE if active else OccupancyState.INACTIVE
        log.debug("occupancy %s (%d tracked)", self.state.value, len(self.tracker))
        self._queue_report(self.state, now)
        return self.state

    async def run(self, interval: float, shutdown: asyncio.Event) -> None:
        """Evaluate every ``interval`` seconds until shutdown is set."""
        loop = asyncio.get_running_loop()
        self._loop = loop
        next_tick = loop.time() + interval
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=max(0.0, next_tick - loop.time()))
                break  # shutdown was set
            except asyncio.TimeoutError:
                pass
            self.evaluate()
            next_tick += interval
            if next_tick <= loop.time():
                # Missed ticks (loop stall, suspend) are dropped, not replayed.
                next_tick = loop.time() + interval

    def _queue_report(self, state: OccupancyState, now: float) -> None:
        report = StateReport(
            state=state,
            last_seen=datetime.fromtimestamp(now, tz=timezone.utc),
        )
        loop = self._loop
        if loop is not None and not loop.is_closed() and _running_loop() is not loop:
            loop.call_soon_threadsafe(self.reports.put_nowait, report)
        else:
            self.reports.put_nowait(report)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
