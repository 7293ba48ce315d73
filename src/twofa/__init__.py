"""twofa — TOTP countdown display with server-aligned clock."""

__version__ = "0.1.0"
