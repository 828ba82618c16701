"""HMAC-SHA256 verification of inbound webhook deliveries.

The digest is always computed over the exact raw request bytes. Parsing
and re-serializing the body first can reorder keys or change whitespace,
which would invalidate a genuine signature.
"""

import binascii
import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def _secret_bytes(secret: bytes | str) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return secret


def compute_signature(raw_body: bytes, secret: bytes | str) -> str:
    """Return the hex HMAC-SHA256 digest of raw_body under secret."""
    return hmac.new(_secret_bytes(secret), raw_body, hashlib.sha256).hexdigest()


def verify_signature(
    raw_body: bytes,
    signature_header: str | None,
    secret: bytes | str | None,
) -> bool:
    """Check a signature header against the raw request body.

    Args:
        raw_body: Request body exactly as received.
        signature_header: Header value, either "sha256=<hex>" or bare "<hex>".
        secret: Shared signing secret.

    Returns:
        True only if the supplied digest matches. Missing header, missing
        secret, empty body, non-hex or wrong-length signatures all yield
        False. This function never raises.
    """
    if not secret or not signature_header or not raw_body:
        return False

    supplied = signature_header.strip()
    if supplied.startswith(SIGNATURE_PREFIX):
        supplied = supplied[len(SIGNATURE_PREFIX):]

    try:
        supplied_digest = binascii.unhexlify(supplied)
    except (binascii.Error, ValueError):
        return False

    expected_digest = hmac.new(
        _secret_bytes(secret), raw_body, hashlib.sha256
    ).digest()

    # Constant time for equal lengths; a length mismatch is simply False.
    return hmac.compare_digest(expected_digest, supplied_digest)


__all__ = ["SIGNATURE_PREFIX", "compute_signature", "verify_signature"]
