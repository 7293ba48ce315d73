"""Limit on automatic code regeneration per slot.

Each slot may be refreshed automatically at ``max_refresh`` boundaries in a
row. After that its code is shown as expired until the user asks for a new
one, which resets the count.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from twofa.models import BoundaryDecision

logger = logging.getLogger(__name__)

MAX_AUTO_REFRESH = 3


@dataclass
class RefreshState:
    count: int = 0


class RefreshGovernor:
    """Per-slot refresh counters over an ordered set of named slots."""

    def __init__(self, slots: Iterable[str], max_refresh: int = MAX_AUTO_REFRESH) -> None:
        self.max_refresh = max_refresh
        self._states: dict[str, RefreshState] = {name: RefreshState() for name in slots}
        if not self._states:
            raise ValueError("RefreshGovernor needs at least one slot")

    @property
    def slots(self) -> list[str]:
        return list(self._states)

    def count(self, slot: str) -> int:
        return self._state(slot).count

    def is_exhausted(self, slot: str) -> bool:
        return self._state(slot).count >= self.max_refresh

    def on_boundary(self, slot: str, has_valid_secret: bool) -> BoundaryDecision:
        """Decide what a period boundary does to ``slot``.

        A ``REGENERATE`` decision consumes one automatic refresh.
        """
        state = self._state(slot)
        if not has_valid_secret:
            return BoundaryDecision.CLEAR
        if state.count >= self.max_refresh:
            logger.debug("Slot %s hit auto-refresh limit (%d)", slot, self.max_refresh)
            return BoundaryDecision.EXPIRED
        state.count += 1
        return BoundaryDecision.REGENERATE

    def reset(self, slot: str) -> None:
        """Manual generation: allow ``max_refresh`` automatic refreshes again."""
        self._state(slot).count = 0

    def _state(self, slot: str) -> RefreshState:
        try:
            return self._states[slot]
        except KeyError:
            raise KeyError(f"Unknown slot: {slot}") from None
