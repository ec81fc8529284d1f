"""Live terminal dashboard using rich."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator

from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hesperus.notifier import DeliveryStatus
from hesperus.occupancy import OccupancyMonitor, OccupancyState
from hesperus.tracker import STALE_WINDOW


def _age(seconds: float) -> str:
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m{seconds % 60:02d}s"
    return f"{seconds // 3600}h{(seconds % 3600) // 60}m"


def _header(monitor: OccupancyMonitor, entity: str) -> Panel:
    """Title + time + current occupancy."""
    title = Text()
    title.append("hesperus", "bold white")
    title.append(f"  {time.strftime('%H:%M:%S')}  ", "dim")
    title.append(f"{entity}.occupancy ", "dim")
    if monitor.state is None:
        title.append("pending", "yellow")
    elif monitor.state is OccupancyState.ACTIVE:
        title.append("active", "bold green")
    else:
        title.append("inactive", "red")
    return Panel(title, style="bold", height=3)


def _watch_table(monitor: OccupancyMonitor, now: float) -> Table:
    table = Table(expand=True, border_style="dim")
    table.add_column("beacon", style="cyan")
    table.add_column("uuid", style="dim")
    table.add_column("major/minor", justify="right")
    table.add_column("min rssi", justify="right")
    table.add_column("last seen", justify="right")

    seen = monitor.tracker.snapshot()
    for name, watch in monitor.registry.items():
        last_seen = seen.get(watch.uuid)
        if last_seen is None:
            age = Text("-", "dim")
        else:
            elapsed = now - last_seen
            age = Text(_age(elapsed), "green" if elapsed < STALE_WINDOW else "yellow")
        table.add_row(
            name,
            watch.uuid,
            f"{watch.major}/{watch.minor}",
            str(watch.min_rssi),
            age,
        )
    return table


def _footer(status: DeliveryStatus, now: float) -> Text:
    text = Text()
    if status.last_at is None or status.last_state is None:
        text.append("no reports sent yet", "dim")
        return text
    text.append("last report: ")
    text.append(status.last_state.value, "bold")
    text.append(f" {_age(now - status.last_at)} ago ", "dim")
    text.append("ok" if status.last_ok else "failed", "green" if status.last_ok else "red")
    text.append(f"  ({status.sent} sent, {status.failed} failed)", "dim")
    return text


class Dashboard:
    def __init__(self, monitor: OccupancyMonitor, status: DeliveryStatus, entity: str) -> None:
        self._monitor = monitor
        self._status = status
        self._entity = entity

    def render(self) -> Group:
        """Build one frame."""
        now = time.time()
        return Group(
            _header(self._monitor, self._entity),
            Panel(_watch_table(self._monitor, now), title="beacons", border_style="blue"),
            _footer(self._status, now),
        )

    async def run(self, ticks: AsyncIterator[None]) -> None:
        """Redraw once per item of ``ticks`` until it is exhausted."""
        with Live(self.render(), refresh_per_second=2) as live:
            async for _ in ticks:
                live.update(self.render())
