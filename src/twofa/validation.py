"""Normalization and validation of base32 TOTP secrets."""

from __future__ import annotations

import re

from twofa.models import Rejection, RejectReason

MIN_LENGTH = 16
MAX_LENGTH = 128

_WHITESPACE = re.compile(r"\s+")
_BASE32 = re.compile(r"^[A-Z2-7]+$")


def normalize(raw: str) -> str:
    """Strip all whitespace and uppercase."""
    return _WHITESPACE.sub("", str(raw)).upper()


def validate(raw: str | None) -> str | Rejection:
    """Return the normalized secret, or a Rejection with its reason.

    Checks run in order and stop at the first failure: empty, too short,
    too long, characters outside the base32 alphabet.
    """
    if not raw:
        return Rejection(reason=RejectReason.EMPTY)
    secret = normalize(raw)
    if len(secret) < MIN_LENGTH:
        return Rejection(reason=RejectReason.TOO_SHORT)
    if len(secret) > MAX_LENGTH:
        return Rejection(reason=RejectReason.TOO_LONG)
    if not _BASE32.match(secret):
        return Rejection(reason=RejectReason.INVALID_ENCODING)
    return secret
