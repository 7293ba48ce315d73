"""Pydantic models for values passed between the clock, scheduler and UI."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


# === Enums ===


class RejectReason(StrEnum):
    EMPTY = "empty"
    TOO_SHORT = "too-short"
    TOO_LONG = "too-long"
    INVALID_ENCODING = "invalid-encoding"


class SlotStatus(StrEnum):
    EMPTY = "empty"
    FRESH = "fresh"
    EXPIRED = "expired"


class BoundaryDecision(StrEnum):
    REGENERATE = "regenerate"
    EXPIRED = "expired"
    CLEAR = "clear"


class AlarmKind(StrEnum):
    SECOND = "second"
    BOUNDARY = "boundary"


# === User-facing messages ===

MESSAGES: dict[str, str] = {
    RejectReason.TOO_SHORT: "Secret is too short, please re-enter.",
    RejectReason.TOO_LONG: "Secret is too long, please re-enter.",
    RejectReason.INVALID_ENCODING: "Secret is not valid base32, please re-enter.",
    "missing_secret": "No secret entered!",
    "expired": "Expired, press the button to get a new code!",
    "generated": "Code generated!",
    "copied": "Copied to clipboard!",
    "copy_failed": "Could not copy, please copy manually!",
    "copy_empty": "Nothing to copy.",
    "history_cleared": "Local history cleared.",
}


# === Data models ===


class TickInfo(BaseModel):
    """Period-relative quantities for one instant."""

    model_config = ConfigDict(frozen=True)

    epoch_second: int
    seconds_into_period: int  # 0..period-1
    seconds_left_display: int  # period-1..0
    next_second_epoch_ms: int
    next_window_boundary_epoch_ms: int


class Rejection(BaseModel):
    """Why a candidate secret was refused."""

    model_config = ConfigDict(frozen=True)

    reason: RejectReason

    @property
    def message(self) -> str | None:
        """User-facing text; empty input is rejected silently."""
        return MESSAGES.get(self.reason)


class ClockState(BaseModel):
    """Correction applied to the local wall clock."""

    offset_ms: int = 0
    last_sync_attempt: int | None = None  # epoch ms, local wall clock
    last_sync_ok: int | None = None


class SyncOk(BaseModel):
    model_config = ConfigDict(frozen=True)

    offset_ms: int
    rtt_ms: float


class SyncFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str


SyncResult = SyncOk | SyncFailed


class SlotView(BaseModel):
    """What the UI shows for one slot."""

    slot: str
    status: SlotStatus = SlotStatus.EMPTY
    secret: str | None = None
    code: str | None = None
    message: str | None = None
