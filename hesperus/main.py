"""Main entry point: scan → decode → match → track → evaluate → report."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from hesperus.config import (
    HesperusConfig,
    apply_overrides,
    load_config_file,
    parse_duration,
)
from hesperus.errors import ConfigParseError, HesperusError
from hesperus.node.decoder import canonical_uuid, encode_ibeacon
from hesperus.node.registry import BeaconRegistry
from hesperus.node.scanner import BeaconScanner
from hesperus.notifier import DeliveryStatus, HassNotifier, consume_reports
from hesperus.occupancy import OccupancyMonitor

log = logging.getLogger("hesperus")


def parse_simulation(value: str) -> tuple[str, int, int, int]:
    """Parse 'UUID:MAJOR:MINOR:RSSI' into its parts."""
    try:
        uuid, major, minor, rssi = value.rsplit(":", 3)
        return canonical_uuid(uuid), int(major), int(minor), int(rssi)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected UUID:MAJOR:MINOR:RSSI, got {value!r}"
        ) from None


def build_config() -> HesperusConfig:
    parser = argparse.ArgumentParser(
        prog="hesperus", description="iBeacon occupancy sensor for Home Assistant"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="Config file (default: ~/.hesperus/config.toml)")
    parser.add_argument("--interval", type=str, default=None,
                        help="Report interval, e.g. 30s or 1m")
    parser.add_argument("--adapter", type=str, default=None, help="Bluetooth adapter, e.g. hci0")
    parser.add_argument("--headless", action="store_true", help="No UI, log only")
    parser.add_argument("--simulate", type=parse_simulation, action="append", default=[],
                        metavar="UUID:MAJOR:MINOR:RSSI",
                        help="Inject a synthetic sighting at startup")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    config = HesperusConfig()

    # Load from config file
    config_path = args.config or config.data_dir / "config.toml"
    apply_overrides(config, load_config_file(config_path))

    # Apply CLI overrides
    if args.interval:
        try:
            config.update_interval = parse_duration("--interval", args.interval)
        except ConfigParseError as e:
            parser.error(str(e))
    if args.adapter:
        config.adapter = args.adapter
    if args.headless:
        config.ui_enabled = False
    config.simulate = list(args.simulate)
    return config


async def run(config: HesperusConfig) -> None:
    """Main async loop."""
    registry = BeaconRegistry.from_entries(config.beacons)
    for entry in config.beacons:
        log.info("added beacon watch for: %s(%s)", entry.name, entry.uuid)
    if len(registry) == 0:
        log.warning("no beacons configured, occupancy will stay inactive")

    monitor = OccupancyMonitor(registry)
    status = DeliveryStatus()
    scanner = BeaconScanner(monitor.handle_advertisement, adapter=config.adapter)

    shutdown = asyncio.Event()

    def handle_signal() -> None:
        log.info("quit detected, stopping")
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    await scanner.start()

    for uuid, major, minor, rssi in config.simulate:
        matched = monitor.handle_advertisement(encode_ibeacon(uuid, major, minor), rssi)
        log.info("simulated sighting of %s matched %s", uuid, sorted(matched) or "nothing")

    # Dashboard
    async def ui_loop() -> None:
        from hesperus.ui.dashboard import Dashboard

        dashboard = Dashboard(monitor, status, config.hass_entity)

        async def ticks():
            while not shutdown.is_set():
                yield None
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=config.ui_refresh)
                    return
                except asyncio.TimeoutError:
                    pass

        await dashboard.run(ticks())

    async with HassNotifier(
        config.state_url, config.hass_token, timeout=config.request_timeout
    ) as notifier:
        consumer = asyncio.create_task(consume_reports(monitor.reports, notifier, status))

        tasks = [asyncio.create_task(monitor.run(config.update_interval, shutdown))]
        if config.ui_enabled:
            tasks.append(asyncio.create_task(ui_loop()))
        else:
            tasks.append(asyncio.create_task(shutdown.wait()))

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            pass
        finally:
            await scanner.stop()
            # Pending reports are dropped on exit.
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
            log.info("hesperus stopped")


def main() -> None:
    try:
        config = build_config()
        asyncio.run(run(config))
    except HesperusError as e:
        log.error("%s", e)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
