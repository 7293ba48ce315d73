"""Shared fakes: a controllable clock and event loop, a recording UI sink."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from twofa.models import SlotView


class FakeClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now


class FakeHandle:
    def __init__(self, when: int, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Timer loop whose time only moves when a test advances it."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(self.clock.now + round(delay * 1000), callback, args)
        self.timers.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.timers if not h.cancelled and not h.fired]

    def advance_to(self, t_ms: int) -> None:
        while True:
            due = [h for h in self.pending if h.when <= t_ms]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.clock.now = max(self.clock.now, handle.when)
            handle.fired = True
            handle.callback(*handle.args)
        self.clock.now = t_ms


class RecordingSink:
    def __init__(self) -> None:
        self.countdown: list[int] = []
        self.slots: list[SlotView] = []
        self.notifications: list[tuple[str, bool]] = []
        self.copied: list[str] = []
        self.fail_copy = False

    def show_countdown(self, seconds_left: int) -> None:
        self.countdown.append(seconds_left)

    def show_slot(self, view: SlotView) -> None:
        self.slots.append(view)

    def notify(self, message: str, warning: bool = False) -> None:
        self.notifications.append((message, warning))

    def copy(self, text: str) -> None:
        if self.fail_copy:
            raise RuntimeError("no clipboard")
        self.copied.append(text)

    @property
    def messages(self) -> list[str]:
        return [m for m, _ in self.notifications]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def loop(clock: FakeClock) -> FakeLoop:
    return FakeLoop(clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
