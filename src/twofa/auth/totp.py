"""TOTP code generation for validated secrets.

Uses pyotp with the standard parameters (SHA1, 30 s period, 6 digits).
Secrets must already be normalized by ``twofa.validation``.
"""

from __future__ import annotations

import hashlib

import pyotp

PERIOD = 30
DIGITS = 6
LABEL = "Handy tool"
ISSUER_PREFIX = "2fa.run|..."


def _totp(secret: str, period: int = PERIOD, digits: int = DIGITS) -> pyotp.TOTP:
    return pyotp.TOTP(secret, digits=digits, digest=hashlib.sha1, interval=period)


def generate_code(secret: str, timestamp_ms: int, period: int = PERIOD, digits: int = DIGITS) -> str:
    """Get the TOTP code for a secret at an epoch-millisecond timestamp."""
    return _totp(secret, period, digits).at(timestamp_ms // 1000)


def get_provisioning_uri(secret: str) -> str:
    """Get the otpauth:// URI for QR code enrollment.

    The issuer carries the last seven characters of the secret so several
    enrolled keys can be told apart in an authenticator app.
    """
    issuer = f"{ISSUER_PREFIX}{secret[-7:]}"
    return _totp(secret).provisioning_uri(name=LABEL, issuer_name=issuer)
