from __future__ import annotations

import hashlib

from ..errors import ChecksumMismatchError


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_sha256(data: bytes, expected: str) -> str:
    """Return the digest of ``data``; raise unless it equals ``expected``."""

    actual = sha256_hex(data)
    if actual != expected.strip().lower():
        raise ChecksumMismatchError(
            f"sha256 mismatch: expected {expected.strip().lower()}, got {actual}",
            expected=expected.strip().lower(),
            actual=actual,
        )
    return actual
