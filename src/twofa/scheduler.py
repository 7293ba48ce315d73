"""Countdown scheduler aligned to the corrected clock.

Two alarms run side by side: one fires at every whole second to refresh the
countdown, one fires at every period boundary to regenerate codes. Neither
repeats on a fixed interval. Each firing reads "now" again and arms the next
one for exactly the time left to its target, so scheduling jitter never
accumulates.

The corrected clock can jump when a sync lands. A boundary alarm that wakes
without a window having been crossed only realigns; one left overdue by a
forward jump is served by the next second tick with the corrected "now".
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from twofa.models import AlarmKind
from twofa.ticks import PERIOD, tick_info

logger = logging.getLogger(__name__)

# Loop wake-ups this close before a target count as the target itself
EARLY_WAKE_MS = 50


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    """The subset of ``asyncio.AbstractEventLoop`` the scheduler needs."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


@dataclass
class ScheduledAlarm:
    """A pending alarm: loop handle, target time and cancellation token."""
    kind: AlarmKind
    fire_at_ms: int
    armed_at_ms: int
    token: int
    handle: TimerHandle


class TickScheduler:
    """Drives the per-second countdown and the per-period boundary."""

    def __init__(
        self,
        loop: TimerLoop,
        now_ms: Callable[[], int],
        on_display: Callable[[int], None],
        on_boundary: Callable[[int], None],
        period: int = PERIOD,
    ) -> None:
        self._loop = loop
        self._now_ms = now_ms
        self._on_display = on_display
        self._on_boundary = on_boundary
        self._period = period
        self._alarms: dict[AlarmKind, ScheduledAlarm] = {}
        self._token = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def alarm(self, kind: AlarmKind) -> ScheduledAlarm | None:
        return self._alarms.get(kind)

    def start(self) -> None:
        """Cancel any pending alarms, publish the countdown and arm both alarms."""
        self._cancel_all()
        self._running = True
        self._publish(tick_info(self._now_ms(), self._period).seconds_left_display)
        self._arm(AlarmKind.SECOND)
        self._arm(AlarmKind.BOUNDARY)
        logger.debug("Tick scheduler started")

    def stop(self) -> None:
        """Cancel both alarms. Safe to call when already stopped."""
        if not self._running and not self._alarms:
            return
        self._cancel_all()
        self._running = False
        logger.debug("Tick scheduler stopped")

    # --- arming ---

    def _arm(self, kind: AlarmKind, after_ms: int | None = None) -> None:
        previous = self._alarms.pop(kind, None)
        if previous is not None:
            previous.handle.cancel()

        now = self._now_ms()
        info = tick_info(now, self._period)
        if kind is AlarmKind.SECOND:
            target, step = info.next_second_epoch_ms, 1000
        else:
            target, step = info.next_window_boundary_epoch_ms, self._period * 1000
        # An early wake-up must not re-arm for the instant it just served
        if after_ms is not None and target <= after_ms:
            target = after_ms + step
        delay_ms = max(0, target - now)

        self._token += 1
        handle = self._loop.call_later(delay_ms / 1000, self._fire, kind, self._token)
        self._alarms[kind] = ScheduledAlarm(
            kind=kind, fire_at_ms=target, armed_at_ms=now, token=self._token, handle=handle
        )

    def _cancel_all(self) -> None:
        for alarm in self._alarms.values():
            alarm.handle.cancel()
        self._alarms.clear()

    # --- firing ---

    def _fire(self, kind: AlarmKind, token: int) -> None:
        current = self._alarms.get(kind)
        if not self._running or current is None or current.token != token:
            # Stale alarm from before a stop/restart
            return
        del self._alarms[kind]

        if kind is AlarmKind.SECOND:
            served = self._fire_second()
        else:
            served = self._fire_boundary(current)

        if self._running:
            self._arm(kind, after_ms=served)

    def _fire_second(self) -> int | None:
        """Publish the countdown. Returns the served instant on an early wake-up."""
        now = self._now_ms()
        info = tick_info(now, self._period)
        if info.next_second_epoch_ms - now <= EARLY_WAKE_MS:
            self._publish(tick_info(info.next_second_epoch_ms, self._period).seconds_left_display)
            return info.next_second_epoch_ms
        self._publish(info.seconds_left_display)

        # A forward offset change can leave the boundary alarm armed on the old basis
        pending = self._alarms.get(AlarmKind.BOUNDARY)
        if pending is not None and now - pending.fire_at_ms >= 1000:
            pending.handle.cancel()
            del self._alarms[AlarmKind.BOUNDARY]
            self._fire_boundary(pending)
            if self._running:
                self._arm(AlarmKind.BOUNDARY)
        return None

    def _fire_boundary(self, alarm: ScheduledAlarm) -> int | None:
        """Run the boundary protocol if a period boundary was actually crossed.

        The corrected clock may have moved since the alarm was armed. A
        backward offset change leaves "now" in the armed window or an earlier
        one: no boundary, just the current countdown.
        """
        now = self._now_ms()
        info = tick_info(now, self._period)
        period_ms = self._period * 1000
        window_start = info.next_window_boundary_epoch_ms - period_ms
        armed_window_start = tick_info(alarm.armed_at_ms, self._period).next_window_boundary_epoch_ms - period_ms

        if info.next_window_boundary_epoch_ms - now <= EARLY_WAKE_MS:
            served = info.next_window_boundary_epoch_ms
            self._publish(self._period - 1)
            self._boundary(served)
            return served
        if window_start > armed_window_start:
            self._publish(info.seconds_left_display)
            self._boundary(now)
            return None
        logger.debug("Boundary alarm fired %dms before the boundary, realigning", info.next_window_boundary_epoch_ms - now)
        self._publish(info.seconds_left_display)
        return None

    def _boundary(self, ts_ms: int) -> None:
        try:
            self._on_boundary(ts_ms)
        except Exception:
            logger.error("Boundary handler failed", exc_info=True)

    def _publish(self, seconds_left: int) -> None:
        try:
            self._on_display(seconds_left)
        except Exception:
            logger.warning("Countdown display failed", exc_info=True)
