"""Passive BLE advertisement scanning."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from hesperus.errors import RadioError

log = logging.getLogger(__name__)

AdvertisementCallback = Callable[[bytes, int], Any]


def manufacturer_records(manufacturer_data: dict[int, bytes]) -> list[bytes]:
    """Rejoin bleak's {company_id: payload} into raw manufacturer data fields.

    The company id goes back in front of the payload little-endian, as it is
    sent on air.
    """
    return [
        company_id.to_bytes(2, "little") + bytes(payload)
        for company_id, payload in manufacturer_data.items()
    ]


class BeaconScanner:
    """Runs a continuous bleak scan and hands every manufacturer data field
    to ``callback(data, rssi)``."""

    def __init__(self, callback: AdvertisementCallback, adapter: str | None = None) -> None:
        self._callback = callback
        self._adapter = adapter
        self._scanner = None

    def _on_detection(self, device, adv_data) -> None:
        if not adv_data.manufacturer_data:
            return
        for record in manufacturer_records(adv_data.manufacturer_data):
            try:
                self._callback(record, int(adv_data.rssi))
            except Exception:
                log.exception("advertisement callback error for %s", device.address)

    async def start(self) -> None:
        from bleak import BleakScanner
        from bleak.exc import BleakError

        kwargs: dict[str, Any] = {}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        try:
            self._scanner = BleakScanner(detection_callback=self._on_detection, **kwargs)
            await self._scanner.start()
        except (BleakError, OSError) as e:
            self._scanner = None
            raise RadioError(f"failed to start BLE scan: {e}") from e
        log.info("BLE scan started%s", f" on {self._adapter}" if self._adapter else "")

    async def stop(self) -> None:
        if self._scanner is None:
            return
        scanner, self._scanner = self._scanner, None
        try:
            await scanner.stop()
        except Exception:
            log.debug("error stopping BLE scan", exc_info=True)
        log.info("BLE scan stopped")
