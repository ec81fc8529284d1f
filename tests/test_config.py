from __future__ import annotations

from pathlib import Path

import pytest

from hesperus.config import (
    BeaconEntry,
    HesperusConfig,
    apply_overrides,
    load_config_file,
    parse_beacons,
    parse_interval,
)
from hesperus.errors import ConfigParseError, ConfigReadError

_CONFIG = """
update_interval = "30s"
hass_url = "http://hass.local:8123/"
hass_token = "abc"
hass_entity = "office"

[[beacons]]
name = "phone"
uuid = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
major = 1
minor = 2
min_rssi = -80

[[beacons]]
name = "watch"
uuid = "11111111-2222-3333-4444-555555555555"
major = 7
minor = 8
min_rssi = -65
"""


def test_parse_interval_units() -> None:
    assert parse_interval("10m") == 600.0
    assert parse_interval("1h") == 3600.0
    assert parse_interval("30s") == 30.0
    assert parse_interval("15") == 15.0


def test_load_and_apply_config_file(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(_CONFIG)

    config = apply_overrides(HesperusConfig(), load_config_file(path))

    assert config.update_interval == 30.0
    assert config.hass_entity == "office"
    assert config.state_url == "http://hass.local:8123/api/states/office.occupancy"
    assert [b.name for b in config.beacons] == ["phone", "watch"]
    assert config.beacons[0] == BeaconEntry(
        name="phone",
        uuid="aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee",
        major=1,
        minor=2,
        min_rssi=-80,
    )


def test_missing_config_is_read_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigReadError) as exc:
        load_config_file(tmp_path / "nope.toml")
    assert exc.value.exit_code == 2


def test_malformed_toml_is_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("update_interval = = 3\n")
    with pytest.raises(ConfigParseError) as exc:
        load_config_file(path)
    assert exc.value.exit_code == 3


@pytest.mark.parametrize(
    "entry",
    [
        {"name": "a", "uuid": "not-a-uuid", "major": 1, "minor": 2, "min_rssi": -80},
        {"name": "a", "uuid": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee", "major": 70000, "minor": 2, "min_rssi": -80},
        {"name": "a", "uuid": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee", "major": "1", "minor": 2, "min_rssi": -80},
        {"name": "a", "uuid": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee", "major": 1, "minor": 2},
    ],
)
def test_invalid_beacon_entries(entry: dict) -> None:
    with pytest.raises(ConfigParseError):
        parse_beacons([entry])


def test_duplicate_beacon_names_rejected() -> None:
    entry = {"name": "a", "uuid": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee", "major": 1, "minor": 2, "min_rssi": -80}
    with pytest.raises(ConfigParseError):
        parse_beacons([entry, dict(entry)])


def test_apply_overrides_rejects_bad_interval() -> None:
    with pytest.raises(ConfigParseError):
        apply_overrides(HesperusConfig(), {"update_interval": "soon"})
    with pytest.raises(ConfigParseError):
        apply_overrides(HesperusConfig(), {"update_interval": 0})


def test_apply_overrides_accepts_numeric_interval() -> None:
    config = apply_overrides(HesperusConfig(), {"update_interval": 90, "adapter": "hci1"})
    assert config.update_interval == 90.0
    assert config.adapter == "hci1"


def test_parse_interval_compound_and_invalid() -> None:
    assert parse_interval("1h30m") == 5400.0
    assert parse_interval("1.5m") == 90.0
    for bad in ("", "soon", "-5s", "nan", "inf", "1h30", "5x"):
        with pytest.raises(ValueError):
            parse_interval(bad)


@pytest.mark.parametrize("value", ["nan", "inf", float("nan"), float("inf"), -5, "0s", True])
def test_apply_overrides_rejects_non_finite_or_non_positive_interval(value: object) -> None:
    with pytest.raises(ConfigParseError):
        apply_overrides(HesperusConfig(), {"update_interval": value})


@pytest.mark.parametrize(
    "overrides",
    [
        {"hass_url": 8123},
        {"hass_token": ["a"]},
        {"ui_enabled": "no"},
        {"adapter": 0},
        {"data_dir": 5},
        {"ui_refresh": "fast"},
    ],
)
def test_apply_overrides_rejects_wrong_types(overrides: dict) -> None:
    with pytest.raises(ConfigParseError):
        apply_overrides(HesperusConfig(), overrides)


def test_apply_overrides_ignores_unknown_and_derived_keys() -> None:
    config = apply_overrides(
        HesperusConfig(),
        {"state_url": "http://elsewhere", "simulate": ["x"], "colour": "blue", "ui_enabled": False},
    )
    assert config.state_url == "http://localhost:8123/api/states/hesperus.occupancy"
    assert config.simulate == []
    assert config.ui_enabled is False


def test_type_errors_in_file_exit_with_parse_status(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("hass_url = 8123\n")
    with pytest.raises(ConfigParseError) as exc:
        apply_overrides(HesperusConfig(), load_config_file(path))
    assert exc.value.exit_code == 3
