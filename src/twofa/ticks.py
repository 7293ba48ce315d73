"""Map an absolute timestamp onto the TOTP period."""

from __future__ import annotations

from twofa.models import TickInfo

PERIOD = 30  # seconds


def tick_info(ts_ms: int, period: int = PERIOD) -> TickInfo:
    """Compute countdown and next alarm targets for ``ts_ms``.

    The display counts ``period - 1`` down to 0, and
    ``next_window_boundary_epoch_ms`` is always the start of the next period.
    """
    epoch_second = int(ts_ms // 1000)
    seconds_into_period = epoch_second % period
    return TickInfo(
        epoch_second=epoch_second,
        seconds_into_period=seconds_into_period,
        seconds_left_display=(period - 1) - seconds_into_period,
        next_second_epoch_ms=(epoch_second + 1) * 1000,
        next_window_boundary_epoch_ms=(epoch_second - seconds_into_period + period) * 1000,
    )
