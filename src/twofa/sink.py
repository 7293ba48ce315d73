"""Where published values go: countdown, slot codes and notifications."""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from typing import Protocol

from rich.console import Console
from rich.live import Live
from rich.table import Table

from twofa.models import SlotStatus, SlotView

logger = logging.getLogger(__name__)

NOTIFY_MIN_GAP_S = 0.3


class UiSink(Protocol):
    def show_countdown(self, seconds_left: int) -> None: ...
    def show_slot(self, view: SlotView) -> None: ...
    def notify(self, message: str, warning: bool = False) -> None: ...
    def copy(self, text: str) -> None: ...


class Notifier:
    """Drops a notification that follows the previous one within ``min_gap_s``."""

    def __init__(
        self,
        sink: UiSink,
        min_gap_s: float = NOTIFY_MIN_GAP_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sink = sink
        self.min_gap_s = min_gap_s
        self._clock = clock
        self._last_at: float | None = None

    def __call__(self, message: str, warning: bool = False) -> bool:
        now = self._clock()
        if self._last_at is not None and now - self._last_at < self.min_gap_s:
            return False
        self._last_at = now
        try:
            self.sink.notify(message, warning=warning)
        except Exception:
            logger.warning("Notification failed: %s", message, exc_info=True)
            return False
        return True


class ConsoleSink:
    """Renders the countdown and slot table with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.countdown: int | None = None
        self.views: dict[str, SlotView] = {}
        self._live: Live | None = None

    def attach(self, live: Live) -> None:
        self._live = live
        live.update(self.render())

    def render(self) -> Table:
        title = f"Next code in [bold]{self.countdown}[/bold]s" if self.countdown is not None else ""
        table = Table(title=title)
        table.add_column("Slot")
        table.add_column("Secret")
        table.add_column("Code", justify="right")
        for view in self.views.values():
            if view.status is SlotStatus.EXPIRED:
                code = f"[red]{view.message}[/red]"
            elif view.code:
                code = f"[green]{view.code}[/green]"
            else:
                code = ""
            table.add_row(view.slot, view.secret or "", code)
        return table

    def _refresh(self) -> None:
        if self._live is not None:
            self._live.update(self.render())

    def show_countdown(self, seconds_left: int) -> None:
        self.countdown = seconds_left
        self._refresh()

    def show_slot(self, view: SlotView) -> None:
        self.views[view.slot] = view
        self._refresh()

    def notify(self, message: str, warning: bool = False) -> None:
        style = "yellow" if warning else "cyan"
        self.console.print(f"[{style}]{message}[/{style}]")

    def copy(self, text: str) -> None:
        """Copy via the OSC 52 terminal escape."""
        if not self.console.is_terminal:
            raise RuntimeError("clipboard needs an interactive terminal")
        payload = base64.b64encode(text.encode()).decode()
        self.console.file.write(f"\x1b]52;c;{payload}\x07")
        self.console.file.flush()
