"""Authenticator: wires clock, scheduler, refresh governor and UI together.

Each slot is an independent secret input. Codes are produced two ways:

    manual    the user asks for a code; always regenerates, resets the
              slot's refresh count, notifies, remembers the secret and
              copies the code
    boundary  a new period starts; the governor decides per slot whether to
              regenerate silently, show the expired state or clear the slot
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from twofa.auth.totp import DIGITS, generate_code, get_provisioning_uri
from twofa.clock import ClockSynchronizer
from twofa.governor import MAX_AUTO_REFRESH, RefreshGovernor
from twofa.models import MESSAGES, BoundaryDecision, Rejection, SlotStatus, SlotView
from twofa.scheduler import TickScheduler, TimerLoop
from twofa.sink import Notifier, UiSink
from twofa.store import KeyValueStore, SecretHistory
from twofa.ticks import PERIOD
from twofa.validation import validate

logger = logging.getLogger(__name__)

CodeGenerator = Callable[[str, int], str]


class Authenticator:
    """Owns the slots and runs the manual and boundary protocols."""

    def __init__(
        self,
        sink: UiSink,
        clock: ClockSynchronizer,
        store: KeyValueStore,
        *,
        slots: Iterable[str] = ("primary",),
        max_refresh: int = MAX_AUTO_REFRESH,
        period: int = PERIOD,
        digits: int = DIGITS,
        generate: CodeGenerator | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.sink = sink
        self.clock = clock
        self.history = SecretHistory(store)
        self.governor = RefreshGovernor(slots, max_refresh=max_refresh)
        self.period = period
        self._generate = generate or (lambda secret, ts: generate_code(secret, ts, period, digits))
        self._notify = notifier or Notifier(sink)
        self.inputs: dict[str, str] = {name: "" for name in self.governor.slots}
        self.views: dict[str, SlotView] = {name: SlotView(slot=name) for name in self.governor.slots}
        self.scheduler: TickScheduler | None = None

        last = self.history.last_secret
        if last:
            self.inputs[self.governor.slots[0]] = last

    @property
    def slots(self) -> list[str]:
        return self.governor.slots

    def set_input(self, slot: str, raw: str) -> None:
        """Update what the user has typed for ``slot``; nothing is generated."""
        if slot not in self.inputs:
            raise KeyError(f"Unknown slot: {slot}")
        self.inputs[slot] = raw

    # --- lifecycle ---

    def start(self, loop: TimerLoop | None = None) -> TickScheduler:
        """Start (or restart) the countdown on ``loop``.

        Defaults to the running asyncio loop, where a clock sync is also
        started in the background. The countdown begins on the current
        offset and self-corrects once the sync lands.
        """
        background_sync = loop is None
        if loop is None:
            loop = asyncio.get_running_loop()
        if self.scheduler is None:
            self.scheduler = TickScheduler(
                loop,
                now_ms=self.clock.now_ms,
                on_display=self.sink.show_countdown,
                on_boundary=self.on_boundary,
                period=self.period,
            )
        self.scheduler.start()
        if background_sync:
            self.clock.sync_in_background()
        return self.scheduler

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()

    # --- manual protocol ---

    def generate(self, slot: str, raw: str | None = None) -> str | None:
        """Generate a code on user request. Returns the code, or None if rejected."""
        if raw is not None:
            self.set_input(slot, raw)
        result = validate(self.inputs[slot])
        if isinstance(result, Rejection):
            if result.message:
                self._notify(result.message, warning=True)
            return None

        code = self._publish_code(slot, result, self.clock.now_ms())
        if code is None:
            return None
        self.governor.reset(slot)
        self._notify(MESSAGES["generated"])
        self._remember(result)
        self.copy_text(code)
        return code

    def copy_text(self, text: str | None) -> bool:
        if not text:
            self._notify(MESSAGES["copy_empty"])
            return False
        try:
            self.sink.copy(text)
        except Exception:
            logger.warning("Copy to clipboard failed", exc_info=True)
            self._notify(MESSAGES["copy_failed"], warning=True)
            return False
        self._notify(MESSAGES["copied"])
        return True

    def provisioning_uri(self, slot: str) -> str | None:
        """otpauth:// URI for the slot's secret, for QR enrollment."""
        raw = self.inputs[slot]
        if not raw:
            self._notify(MESSAGES["missing_secret"], warning=True)
            return None
        result = validate(raw)
        if isinstance(result, Rejection):
            if result.message:
                self._notify(result.message, warning=True)
            return None
        return get_provisioning_uri(result)

    def clear_history(self) -> None:
        self.history.clear()
        self._notify(MESSAGES["history_cleared"])

    # --- boundary protocol ---

    def on_boundary(self, ts_ms: int) -> None:
        """Handle a period boundary for every slot."""
        for slot in self.slots:
            secret = validate(self.inputs[slot])
            valid = isinstance(secret, str)
            decision = self.governor.on_boundary(slot, valid)
            if decision is BoundaryDecision.REGENERATE:
                self._publish_code(slot, secret, ts_ms)
            elif decision is BoundaryDecision.EXPIRED:
                self._show(SlotView(
                    slot=slot,
                    status=SlotStatus.EXPIRED,
                    secret=self.views[slot].secret,
                    message=MESSAGES["expired"],
                ))
            else:
                self._show(SlotView(slot=slot))

    # --- helpers ---

    def _publish_code(self, slot: str, secret: str, ts_ms: int) -> str | None:
        try:
            code = self._generate(secret, ts_ms)
        except Exception:
            logger.error("Code generation failed for slot %s", slot, exc_info=True)
            return None
        self._show(SlotView(slot=slot, status=SlotStatus.FRESH, secret=secret, code=code))
        return code

    def _show(self, view: SlotView) -> None:
        self.views[view.slot] = view
        try:
            self.sink.show_slot(view)
        except Exception:
            logger.warning("Slot display failed for %s", view.slot, exc_info=True)

    def _remember(self, secret: str) -> None:
        try:
            self.history.set_last_secret(secret)
            self.history.remember(secret)
        except Exception:
            logger.warning("Could not persist secret history", exc_info=True)
