"""Runtime configuration for hesperus."""

from __future__ import annotations

import math
import re
import tomllib
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from hesperus.errors import ConfigParseError, ConfigReadError

_BEACON_KEYS = ("name", "uuid", "major", "minor", "min_rssi")
_STR_FIELDS = ("hass_url", "hass_token", "hass_entity")
_DURATION_FIELDS = ("update_interval", "request_timeout", "ui_refresh")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "": 1.0}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([hms]?)")


@dataclass(frozen=True)
class BeaconEntry:
    name: str
    uuid: str
    major: int
    minor: int
    min_rssi: int


@dataclass
class HesperusConfig:
    # Evaluation
    update_interval: float = 60.0  # seconds between occupancy reports

    # Home Assistant
    hass_url: str = "http://localhost:8123"
    hass_token: str = ""
    hass_entity: str = "hesperus"
    request_timeout: float = 10.0

    # Radio
    adapter: str | None = None

    # UI
    ui_enabled: bool = True
    ui_refresh: float = 1.0

    # Debug: synthetic (uuid, major, minor, rssi) sightings fed in at startup
    simulate: list[tuple[str, int, int, int]] = field(default_factory=list)

    beacons: list[BeaconEntry] = field(default_factory=list)

    # Paths
    data_dir: Path = field(default_factory=lambda: Path.home() / ".hesperus")

    @property
    def state_url(self) -> str:
        return f"{self.hass_url.rstrip('/')}/api/states/{self.hass_entity}.occupancy"


def load_config_file(path: Path) -> dict:
    """Load config from a TOML file.

    Unlike optional overrides, the config file is required: a missing or
    unreadable file raises ConfigReadError, malformed TOML raises
    ConfigParseError.
    """
    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"failed to read config {path}: {e}") from e
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"failed to parse config {path}: {e}") from e


def apply_overrides(config: HesperusConfig, overrides: dict) -> HesperusConfig:
    """Apply dict overrides (from TOML or CLI) onto a config.

    Unknown keys are ignored; known keys with the wrong type raise
    ConfigParseError.
    """
    for key, value in overrides.items():
        if key in _DURATION_FIELDS:
            setattr(config, key, parse_duration(key, value))
        elif key == "beacons":
            config.beacons = parse_beacons(value)
        elif key in _STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigParseError(f"{key} must be a string, got {value!r}")
            setattr(config, key, value)
        elif key == "adapter":
            if value is not None and not isinstance(value, str):
                raise ConfigParseError(f"adapter must be a string, got {value!r}")
            config.adapter = value or None
        elif key == "ui_enabled":
            if not isinstance(value, bool):
                raise ConfigParseError(f"ui_enabled must be true or false, got {value!r}")
            config.ui_enabled = value
        elif key == "data_dir":
            if not isinstance(value, str):
                raise ConfigParseError(f"data_dir must be a path string, got {value!r}")
            config.data_dir = Path(value).expanduser()
    return config


def parse_interval(s: str) -> float:
    """Seconds in a duration such as '90', '45s', '5m' or '1h30m'.

    A bare number counts as seconds. Raises ValueError on anything else.
    """
    text = s.lower().replace(" ", "")
    parts = list(_DURATION_PART.finditer(text))
    if not parts or "".join(m.group(0) for m in parts) != text:
        raise ValueError(f"invalid duration: {s!r}")
    if len(parts) > 1 and any(not m.group(2) for m in parts):
        raise ValueError(f"invalid duration: {s!r}")
    return sum(float(m.group(1)) * _UNIT_SECONDS[m.group(2)] for m in parts)


def parse_duration(key: str, value: object) -> float:
    """Validate a duration setting: a positive, finite number of seconds."""
    try:
        if isinstance(value, str):
            seconds = parse_interval(value)
        elif isinstance(value, int | float) and not isinstance(value, bool):
            seconds = float(value)
        else:
            raise ValueError(value)
    except ValueError:
        raise ConfigParseError(f"invalid duration for {key}: {value!r}") from None
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigParseError(f"{key} must be a positive duration, got {value!r}")
    return seconds


def _int_field(entry: dict, key: str, low: int | None = None, high: int | None = None) -> int:
    value = entry[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigParseError(f"beacon {entry.get('name')!r}: {key} must be an integer")
    if (low is not None and value < low) or (high is not None and value > high):
        raise ConfigParseError(
            f"beacon {entry.get('name')!r}: {key}={value} out of range {low}..{high}"
        )
    return value


def parse_beacons(entries: object) -> list[BeaconEntry]:
    """Validate the [[beacons]] tables, preserving their order."""
    if not isinstance(entries, list):
        raise ConfigParseError("beacons must be an array of tables")

    beacons: list[BeaconEntry] = []
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigParseError(f"beacon entry must be a table, got {entry!r}")
        missing = [key for key in _BEACON_KEYS if key not in entry]
        if missing:
            raise ConfigParseError(
                f"beacon {entry.get('name')!r} missing {', '.join(missing)}"
            )

        name = str(entry["name"])
        if name in seen:
            raise ConfigParseError(f"duplicate beacon name {name!r}")
        seen.add(name)

        try:
            uuid.UUID(str(entry["uuid"]).strip())
        except ValueError:
            raise ConfigParseError(
                f"beacon {name!r}: invalid uuid {entry['uuid']!r}"
            ) from None

        beacons.append(BeaconEntry(
            name=name,
            uuid=str(entry["uuid"]).strip(),
            major=_int_field(entry, "major", 0, 0xFFFF),
            minor=_int_field(entry, "minor", 0, 0xFFFF),
            min_rssi=_int_field(entry, "min_rssi"),
        ))
    return beacons
