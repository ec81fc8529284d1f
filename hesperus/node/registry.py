"""Configured beacons of interest and advertisement matching."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from hesperus.config import BeaconEntry
from hesperus.node.decoder import DecodedAdvertisement, canonical_uuid


@dataclass(frozen=True, slots=True)
class BeaconWatch:
    uuid: str
    major: int
    minor: int
    min_rssi: int

    def matches(self, decoded: DecodedAdvertisement) -> bool:
        # min_rssi is a floor: the signal must be strictly stronger.
        return (
            decoded.uuid.upper() == self.uuid
            and decoded.major == self.major
            and decoded.minor == self.minor
            and decoded.rssi > self.min_rssi
        )


class BeaconRegistry:
    def __init__(self, watches: Mapping[str, BeaconWatch] | None = None) -> None:
        self._watches: dict[str, BeaconWatch] = dict(watches or {})

    @classmethod
    def from_entries(cls, entries: Iterable[BeaconEntry]) -> BeaconRegistry:
        return cls({
            entry.name: BeaconWatch(
                uuid=canonical_uuid(entry.uuid),
                major=entry.major,
                minor=entry.minor,
                min_rssi=entry.min_rssi,
            )
            for entry in entries
        })

    def match(self, decoded: DecodedAdvertisement) -> set[str]:
        """Names of every watch the advertisement satisfies."""
        return {name for name, watch in self._watches.items() if watch.matches(decoded)}

    def get(self, name: str) -> BeaconWatch | None:
        return self._watches.get(name)

    def items(self) -> Iterator[tuple[str, BeaconWatch]]:
        return iter(self._watches.items())

    def __len__(self) -> int:
        return len(self._watches)
