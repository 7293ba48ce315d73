"""Tests for TOTP code generation (RFC 6238 SHA1 vectors, 6 digits)."""

from __future__ import annotations

from urllib.parse import unquote

from twofa.auth.totp import generate_code, get_provisioning_uri

# base32 of the RFC 6238 SHA1 seed "12345678901234567890"
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_rfc6238_vectors():
    assert generate_code(RFC_SECRET, 59_000) == "287082"
    assert generate_code(RFC_SECRET, 1_111_111_109_000) == "081804"
    assert generate_code(RFC_SECRET, 1_234_567_890_000) == "005924"


def test_same_code_within_period():
    assert generate_code(RFC_SECRET, 30_000) == generate_code(RFC_SECRET, 59_999)
    assert generate_code(RFC_SECRET, 29_999) != generate_code(RFC_SECRET, 30_000)


def test_code_shape():
    code = generate_code("JBSWY3DPEHPK3PXP", 1_700_000_000_000)
    assert len(code) == 6
    assert code.isdigit()


def test_provisioning_uri():
    uri = unquote(get_provisioning_uri("JBSWY3DPEHPK3PXP"))
    assert uri.startswith("otpauth://totp/2fa.run|...HPK3PXP:Handy tool?")
    assert "secret=JBSWY3DPEHPK3PXP" in uri
    assert "issuer=2fa.run|...HPK3PXP" in uri
