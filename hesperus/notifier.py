"""Home Assistant state push."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol

import aiohttp

from hesperus.occupancy import OccupancyState, StateReport

log = logging.getLogger(__name__)


class Notifier(Protocol):
    async def report(self, report: StateReport) -> bool: ...


@dataclass
class DeliveryStatus:
    sent: int = 0
    failed: int = 0
    last_state: OccupancyState | None = None
    last_ok: bool | None = None
    last_at: float | None = None


class HassNotifier:
    """POSTs occupancy reports to a Home Assistant state entity."""

    def __init__(
        self,
        state_url: str,
        token: str,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = state_url
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HassNotifier:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def report(self, report: StateReport) -> bool:
        """Send one report. Failures are logged and returned as False, never retried."""
        if self._session is None:
            raise RuntimeError("HassNotifier used outside 'async with'")
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            async with self._session.post(
                self._url,
                json=report.to_payload(),
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                body = await resp.text()
                if 200 <= resp.status <= 299:
                    return True
                log.warning(
                    "failed to update state entity (HTTP %d): %s", resp.status, body.strip()
                )
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("failed to update state entity: %s", str(e) or type(e).__name__)
            return False


async def consume_reports(
    queue: asyncio.Queue[StateReport],
    notifier: Notifier,
    status: DeliveryStatus | None = None,
) -> None:
    """Deliver queued reports one at a time, forever.

    Each report is fully sent before the next is taken off the queue, so the
    endpoint never sees overlapping requests.
    """
    while True:
        report = await queue.get()
        try:
            ok = await notifier.report(report)
        except Exception:
            log.exception("notifier error")
            ok = False
        finally:
            queue.task_done()

        if ok:
            log.debug("reported %s", report.state.value)
        if status is not None:
            status.last_state = report.state
            status.last_ok = ok
            status.last_at = time.time()
            if ok:
                status.sent += 1
            else:
                status.failed += 1
