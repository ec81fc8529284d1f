from __future__ import annotations

import threading

from hesperus.tracker import STALE_WINDOW, ActivityTracker


def test_only_first_sighting_is_new() -> None:
    tracker = ActivityTracker()
    assert tracker.record_sighting("A", 100.0) is True
    assert tracker.record_sighting("A", 110.0) is False
    assert tracker.record_sighting("A", 120.0) is False
    assert tracker.snapshot() == {"A": 120.0}


def test_sweep_keeps_recent_and_drops_stale() -> None:
    now = 10_000.0
    tracker = ActivityTracker()
    tracker.record_sighting("recent", now - (4 * 60 + 59))
    tracker.record_sighting("stale", now - (5 * 60 + 1))

    active, removed = tracker.sweep(now, stale_window=300.0)

    assert active is True
    assert removed == {"stale"}
    assert "recent" in tracker
    assert "stale" not in tracker


def test_sweep_boundary_counts_as_stale() -> None:
    tracker = ActivityTracker()
    tracker.record_sighting("A", 0.0)

    active, removed = tracker.sweep(STALE_WINDOW)

    assert active is False
    assert removed == {"A"}
    assert len(tracker) == 0


def test_swept_uuid_is_new_again() -> None:
    tracker = ActivityTracker()
    tracker.record_sighting("A", 0.0)
    tracker.sweep(1000.0)
    assert tracker.record_sighting("A", 1001.0) is True


def test_sweep_empty_tracker() -> None:
    assert ActivityTracker().sweep(0.0) == (False, set())


def test_concurrent_sightings_and_sweeps() -> None:
    tracker = ActivityTracker()
    errors: list[BaseException] = []
    done = threading.Event()

    def sight(worker: int) -> None:
        try:
            for i in range(2000):
                tracker.record_sighting(f"{worker}-{i % 50}", float(i))
        except BaseException as e:
            errors.append(e)

    def sweep() -> None:
        try:
            while not done.is_set():
                tracker.sweep(1000.0, stale_window=500.0)
        except BaseException as e:
            errors.append(e)

    sweeper = threading.Thread(target=sweep)
    workers = [threading.Thread(target=sight, args=(n,)) for n in range(4)]
    sweeper.start()
    for t in workers:
        t.start()
    for t in workers:
        t.join()
    done.set()
    sweeper.join()

    assert errors == []
    # Every worker's last 50 sightings (i >= 1950) are recent, so they survive any sweep.
    snapshot = tracker.snapshot()
    assert len(snapshot) == 4 * 50
    assert all(last_seen >= 1950.0 for last_seen in snapshot.values())
    active, removed = tracker.sweep(1000.0, stale_window=500.0)
    assert active is True
    assert removed == set()
