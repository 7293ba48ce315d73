"""Local clock correction against an HTTP time authority.

One HEAD request is sent to a trusted endpoint and its ``Date`` header is
read. Half the round trip is added to estimate the server's clock at
receipt, and the difference to the local wall clock becomes the offset
applied to every "now" read in the app. Failures keep the previous
offset (0 until the first successful sync).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import timezone
from email.utils import parsedate_to_datetime

import httpx

from twofa.models import ClockState, SyncFailed, SyncOk, SyncResult

logger = logging.getLogger(__name__)


def wall_ms() -> int:
    """Local wall clock in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def monotonic_ms() -> float:
    return time.monotonic_ns() / 1_000_000


def parse_date_header(value: str | None) -> int | None:
    """Parse an HTTP ``Date`` header into epoch ms, or None if unusable."""
    if not value:
        return None
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        # "-0000" zone: UTC with unknown origin
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class ClockSynchronizer:
    """Holds the clock offset and refreshes it from the time authority."""

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        wall: Callable[[], int] = wall_ms,
        monotonic: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.url = url
        self.state = ClockState()
        self._client = client
        self._wall = wall
        self._monotonic = monotonic
        self._task: asyncio.Task[SyncResult] | None = None

    @property
    def offset_ms(self) -> int:
        return self.state.offset_ms

    def now_ms(self) -> int:
        """Corrected "now": local wall clock plus the last known offset."""
        return self._wall() + self.state.offset_ms

    async def sync(self) -> SyncResult:
        """Query the time authority once. Never raises.

        The wall time at receipt is derived from the wall time at send plus
        the monotonic round trip, so one clock basis is used throughout.
        """
        wall0 = self._wall()
        t0 = self._monotonic()
        self.state.last_sync_attempt = wall0
        try:
            resp = await self._head()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Clock sync request failed: %s", e)
            return SyncFailed(reason=f"transport: {type(e).__name__}")
        t1 = self._monotonic()

        if resp.is_error:
            logger.warning("Clock sync got HTTP %d from %s", resp.status_code, self.url)
            return SyncFailed(reason=f"status: {resp.status_code}")

        server_ms = parse_date_header(resp.headers.get("Date"))
        if server_ms is None:
            logger.debug("Clock sync response has no usable Date header")
            return SyncFailed(reason="missing or malformed Date header")

        rtt = max(0.0, t1 - t0)
        server_epoch = server_ms + rtt / 2
        wall_at_receipt = wall0 + rtt
        offset = round(server_epoch - wall_at_receipt)

        self.state.offset_ms = offset
        self.state.last_sync_ok = wall0
        logger.info("Clock synced: offset=%dms rtt=%.1fms", offset, rtt)
        return SyncOk(offset_ms=offset, rtt_ms=rtt)

    async def _head(self) -> httpx.Response:
        headers = {"Cache-Control": "no-store"}
        if self._client is not None:
            return await self._client.head(self.url, headers=headers)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.head(self.url, headers=headers)

    def sync_in_background(self) -> asyncio.Task[SyncResult]:
        """Start ``sync()`` on the running loop without waiting for it.

        A sync already in flight is reused instead of starting another.
        """
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.sync())
        return self._task

    async def run_periodic(self, interval_s: float) -> None:
        """Re-sync every ``interval_s`` seconds until cancelled.

        The first sync waits one interval; the initial sync belongs to
        ``sync_in_background``.
        """
        while True:
            await asyncio.sleep(interval_s)
            await self.sync()
