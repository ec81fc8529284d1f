"""iBeacon manufacturer-data decoding."""

from __future__ import annotations

import struct
import uuid as uuidlib
from dataclasses import dataclass

# Apple company id 0x004C as sent on air (little-endian), iBeacon type 0x02,
# payload length 0x15.
IBEACON_PREFIX = 0x4C000215
IBEACON_LENGTH = 25


@dataclass(frozen=True, slots=True)
class DecodedAdvertisement:
    uuid: str
    major: int
    minor: int
    rssi: int


def canonical_uuid(value: str) -> str:
    """Normalise a UUID string to upper-case 8-4-4-4-12 form.

    Raises ValueError if ``value`` is not a UUID.
    """
    return str(uuidlib.UUID(value.strip())).upper()


def _format_uuid(raw: bytes) -> str:
    h = raw.hex()
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}".upper()


def decode_ibeacon(data: bytes, rssi: int) -> DecodedAdvertisement | None:
    """Parse raw manufacturer data; returns None for anything that is not an iBeacon."""
    if len(data) < IBEACON_LENGTH:
        return None
    (prefix,) = struct.unpack_from(">I", data, 0)
    if prefix != IBEACON_PREFIX:
        return None
    major, minor = struct.unpack_from(">HH", data, 20)
    return DecodedAdvertisement(
        uuid=_format_uuid(bytes(data[4:20])),
        major=major,
        minor=minor,
        rssi=rssi,
    )


def encode_ibeacon(uuid: str, major: int, minor: int, measured_power: int = -59) -> bytes:
    """Build the 25-byte manufacturer data an iBeacon transmitter would send."""
    return (
        struct.pack(">I", IBEACON_PREFIX)
        + uuidlib.UUID(uuid).bytes
        + struct.pack(">HHb", major, minor, measured_power)
    )
